#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Тонкий лаунчер для удобного запуска uvicorn.

Ядро лежит в пакете `retrieval_qa`, FastAPI-приложение - в `app/main.py`.
Хост, порт и провайдеры берутся из переменных окружения (RAG_*, OPENAI_*):
  RAG_EMBEDDING_PROVIDER=huggingface OPENAI_API_KEY=... python RAG_pipeline.py
"""

if __name__ == "__main__":
    import uvicorn

    from retrieval_qa.config import AppConfig

    cfg = AppConfig.from_env()
    uvicorn.run("app.main:app", host=cfg.host, port=cfg.port, reload=False)
