#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from retrieval_qa.config import AppConfig
from retrieval_qa.documents import DocumentStore, InMemoryDocumentStore
from retrieval_qa.embeddings import make_embedding_provider
from retrieval_qa.engine import QueryPipeline
from retrieval_qa.errors import (
    EmptyContentError,
    InvalidQueryError,
    PipelineError,
    UnsupportedFileTypeError,
)
from retrieval_qa.indexer import IngestPipeline, extract_text
from retrieval_qa.llm import make_generation_provider
from retrieval_qa.vectorstore import InMemoryVectorIndex

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Настраивает корневой логгер один раз на процесс."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


@dataclass
class Services:
    """Собранные коллабораторы одного экземпляра приложения."""
    index: InMemoryVectorIndex
    documents: DocumentStore
    ingest: IngestPipeline
    query: QueryPipeline


def build_services(cfg: AppConfig) -> Services:
    """Создаёт индекс, хранилище, провайдеров и оба пайплайна по конфигу."""
    embedder = make_embedding_provider(cfg.embedding)
    generator = make_generation_provider(cfg.llm)
    index = InMemoryVectorIndex()
    documents = InMemoryDocumentStore()
    return Services(
        index=index,
        documents=documents,
        ingest=IngestPipeline(embedder, documents, index, cfg.ingest),
        query=QueryPipeline(embedder, index, documents, generator, cfg.retrieval),
    )


class IngestRequest(BaseModel):
    """Тело запроса для индексации вставленного текста."""
    text: str
    source: str = "pasted_text"


class IngestResponse(BaseModel):
    """Ответ на индексацию: id документа, id в индексе и заголовок."""
    status: str = "ingest_success"
    document_id: str
    index_id: str
    title: str
    message: str = "Document ingested and vectorized successfully"


class IngestDirectoryRequest(BaseModel):
    """Тело запроса для индексации директории документов на сервере."""
    data_dir: str


class IngestDirectoryResponse(BaseModel):
    ingested: List[IngestResponse]
    errors: Dict[str, str]
    took_ms: int


class QueryRequest(BaseModel):
    """Тело запроса: вопрос и (опционально) число контекстов."""
    q: str
    k: Optional[int] = Field(default=None, ge=1)


class ContextOut(BaseModel):
    text: str
    score: float


class QueryResponse(BaseModel):
    """Ответ на вопрос: текст ответа, контексты и время выполнения."""
    answer: str
    contexts: List[ContextOut]
    took_ms: int


_CLIENT_ERRORS = (EmptyContentError, InvalidQueryError, UnsupportedFileTypeError)


def create_app(services: Optional[Services] = None, config: Optional[AppConfig] = None) -> FastAPI:
    """Фабрика FastAPI-приложения.

    Коллабораторы передаются явно (services) либо собираются лениво по
    config / переменным окружения при первом запросе.
    """
    cfg = config or AppConfig.from_env()

    app = FastAPI(title="Retrieval QA API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    configure_logging(cfg.log_level)
    app.state.config = cfg
    app.state.services = services
    app.state.services_lock = threading.Lock()

    @app.exception_handler(PipelineError)
    def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
        status = 400 if isinstance(exc, _CLIENT_ERRORS) else 500
        if status == 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"detail": exc.to_dict()})

    def get_services(request: Request) -> Services:
        state = request.app.state
        if state.services is None:
            with state.services_lock:
                if state.services is None:
                    state.services = build_services(state.config)
        return state.services

    @app.get("/health")
    def health(svc: Services = Depends(get_services)) -> Dict[str, Any]:
        """Простой health-check эндпоинт для мониторинга/оркестраторов."""
        return {"status": "ok", "documents": len(svc.documents), "vectors": len(svc.index)}

    @app.post("/api/ingest", response_model=IngestResponse)
    def ingest(req: IngestRequest, svc: Services = Depends(get_services)) -> IngestResponse:
        """Индексирует вставленный текст: DocumentStore -> эмбеддинг -> векторный индекс."""
        result = svc.ingest.ingest(req.text, req.source)
        return IngestResponse(document_id=result.document_id, index_id=result.index_id, title=result.title)

    @app.post("/api/ingest/file", response_model=IngestResponse)
    def ingest_file(
        file: UploadFile = File(...),
        source: Optional[str] = Form(default=None),
        svc: Services = Depends(get_services),
    ) -> IngestResponse:
        """Индексирует загруженный файл (PDF, TXT или MD)."""
        text = extract_text(file.filename or "", file.content_type, file.file.read())
        result = svc.ingest.ingest(text, source or file.filename)
        return IngestResponse(document_id=result.document_id, index_id=result.index_id, title=result.title)

    @app.post("/api/ingest/directory", response_model=IngestDirectoryResponse)
    def ingest_directory(req: IngestDirectoryRequest, svc: Services = Depends(get_services)) -> IngestDirectoryResponse:
        """Индексирует все поддерживаемые файлы директории на стороне сервера."""
        t0 = time.time()
        try:
            report = svc.ingest.ingest_directory(req.data_dir)
        except FileNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        took_ms = int((time.time() - t0) * 1000)
        return IngestDirectoryResponse(
            ingested=[
                IngestResponse(document_id=r.document_id, index_id=r.index_id, title=r.title)
                for r in report.ingested
            ],
            errors=report.errors,
            took_ms=took_ms,
        )

    @app.post("/api/query", response_model=QueryResponse)
    def query(req: QueryRequest, svc: Services = Depends(get_services)) -> QueryResponse:
        """Отвечает на вопрос по проиндексированным документам."""
        t0 = time.time()
        result = svc.query.query(req.q.strip(), k=req.k)
        took_ms = int((time.time() - t0) * 1000)
        return QueryResponse(
            answer=result.answer,
            contexts=[ContextOut(text=c.text, score=c.score) for c in result.contexts],
            took_ms=took_ms,
        )

    @app.delete("/api/vectors/{record_id}", status_code=204)
    def delete_vector(record_id: str, svc: Services = Depends(get_services)) -> Response:
        """Удаляет вектор из индекса; отсутствие id - не ошибка."""
        svc.index.delete(record_id)
        return Response(status_code=204)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _cfg = app.state.config
    uvicorn.run("app.main:app", host=_cfg.host, port=_cfg.port, reload=False)
