#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EmbeddingConfig:
    """Параметры провайдера эмбеддингов.

    - provider: "mock" (детерминированный хэш), "huggingface" или "openai"
    - model_name: имя модели (HuggingFace или OpenAI-совместимого API)
    - dimension: размерность вектора; у mock-провайдера должна совпадать с основной моделью
    - base_url, api_key: доступ к OpenAI-совместимому API
    - fallback_to_mock: при ошибке основной модели отдавать хэш-эмбеддинг вместо исключения
    """
    provider: str = "mock"
    model_name: str = "BAAI/bge-small-en-v1.5"
    dimension: int = 384
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    embed_batch_size: int = 32
    fallback_to_mock: bool = True


@dataclass
class LLMConfig:
    """Параметры языковой модели (OpenAI-совместимый API).

    - provider: "mock" (шаблонный ответ) или "openai"
    - base_url, api_key: доступ к сервису LLM
    - model_name: имя модели
    - temperature, top_p, max_tokens: параметры генерации
    - system_prompt: системный промпт для роли system
    - enable_thinking: передавать ли спец.параметр enable_thinking
    - fallback_to_mock: при ошибке API возвращать шаблонный ответ
    """
    provider: str = "mock"
    base_url: Optional[str] = "http://localhost:8080/v1"
    api_key: Optional[str] = None
    model_name: str = "gpt-3.5-turbo"
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 500
    system_prompt: str = (
        "You are a helpful research assistant. Answer questions based on the "
        "provided context accurately and concisely."
    )
    enable_thinking: bool = False
    fallback_to_mock: bool = True


@dataclass
class IngestConfig:
    """Параметры подготовки документа к индексации.

    - title_max_chars: длина заголовка (первая строка текста)
    - snippet_chars: длина сниппета, хранимого рядом с вектором
    - truncation_marker: добавляется к обрезанному сниппету
    """
    title_max_chars: int = 100
    snippet_chars: int = 200
    truncation_marker: str = "..."
    default_title: str = "Untitled"
    default_source: str = "unknown"
    required_exts: List[str] = field(default_factory=lambda: [".txt", ".md", ".pdf", ".html", ".htm"])


@dataclass
class RetrievalConfig:
    """Параметры извлечения контекста.

    - top_k: сколько ближайших документов брать по умолчанию
    - max_top_k: верхняя граница top_k для входящих запросов
    - fulltext_context_chars: сколько символов fullText брать, если сниппета нет
    - no_results_answer: фиксированный ответ для пустого индекса
    """
    top_k: int = 3
    max_top_k: int = 50
    fulltext_context_chars: int = 500
    no_results_answer: str = "No relevant documents found. Please ingest some documents first."


@dataclass
class AppConfig:
    """Сводная конфигурация сервиса."""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Собирает конфигурацию из переменных окружения.

        Без API-ключа LLM и без явного RAG_EMBEDDING_PROVIDER используются
        mock-провайдеры, чтобы демо работало без внешних сервисов.
        """
        env = os.environ if environ is None else environ

        api_key = env.get("OPENAI_API_KEY") or None
        # с ключом без OPENAI_BASE_URL - стандартный эндпоинт клиента openai
        base_url = env.get("OPENAI_BASE_URL") or (None if api_key else LLMConfig.base_url)

        emb = EmbeddingConfig(
            provider=env.get("RAG_EMBEDDING_PROVIDER", "mock").lower(),
            model_name=env.get("RAG_EMBEDDING_MODEL", EmbeddingConfig.model_name),
            dimension=int(env.get("RAG_EMBEDDING_DIM", EmbeddingConfig.dimension)),
            base_url=base_url,
            api_key=api_key,
            fallback_to_mock=_env_bool(env.get("RAG_EMBEDDING_FALLBACK"), True),
        )
        llm = LLMConfig(
            provider=env.get("RAG_LLM_PROVIDER", "openai" if api_key else "mock").lower(),
            base_url=base_url,
            api_key=api_key,
            model_name=env.get("RAG_LLM_MODEL", LLMConfig.model_name),
            temperature=float(env.get("RAG_LLM_TEMPERATURE", LLMConfig.temperature)),
            max_tokens=int(env.get("RAG_LLM_MAX_TOKENS", LLMConfig.max_tokens)),
            fallback_to_mock=_env_bool(env.get("RAG_LLM_FALLBACK"), True),
        )
        retrieval = RetrievalConfig(top_k=int(env.get("RAG_TOP_K", RetrievalConfig.top_k)))
        origins = [o.strip() for o in env.get("RAG_CORS_ORIGINS", "*").split(",") if o.strip()]

        return cls(
            embedding=emb,
            llm=llm,
            retrieval=retrieval,
            host=env.get("RAG_HOST", "0.0.0.0"),
            port=int(env.get("PORT", env.get("RAG_PORT", 8000))),
            log_level=env.get("RAG_LOG_LEVEL", "INFO").upper(),
            cors_origins=origins or ["*"],
        )
