"""Ядро сервиса вопросов-ответов по документам (RAG).

Содержит:
- config: dataclass-конфиги эмбеддингов, LLM, индексации и извлечения
- errors: типизированные ошибки пайплайнов (kind + сообщение)
- vectorstore: векторный индекс в памяти с косинусным top-K поиском
- embeddings: провайдеры эмбеддингов (hash-mock, HuggingFace, OpenAI-совместимый)
- llm: адаптер LlamaIndex CustomLLM для OpenAI-совместимого Chat API и mock-ответчик
- documents: хранилище документов (полный текст, заголовок, сниппет)
- indexer: пайплайн индексации документа
- engine: пайплайн ответа на вопрос (поиск + контекст + генерация)
"""

from .documents import DocumentStore, InMemoryDocumentStore, StoredDocument
from .embeddings import EmbeddingProvider, HashEmbedding, make_embedding_provider
from .engine import QueryPipeline, QueryResult
from .errors import (
    DimensionMismatchError,
    DocumentNotFoundError,
    EmptyContentError,
    IngestFailedError,
    InvalidQueryError,
    PipelineError,
    QueryFailedError,
)
from .indexer import IngestPipeline, IngestResult
from .llm import GenerationProvider, TemplateAnswerLLM, make_generation_provider
from .vectorstore import InMemoryVectorIndex, SearchHit, VectorRecord

__all__ = [
    "DimensionMismatchError",
    "DocumentNotFoundError",
    "DocumentStore",
    "EmbeddingProvider",
    "EmptyContentError",
    "GenerationProvider",
    "HashEmbedding",
    "InMemoryDocumentStore",
    "InMemoryVectorIndex",
    "IngestFailedError",
    "IngestPipeline",
    "IngestResult",
    "InvalidQueryError",
    "PipelineError",
    "QueryFailedError",
    "QueryPipeline",
    "QueryResult",
    "SearchHit",
    "StoredDocument",
    "TemplateAnswerLLM",
    "VectorRecord",
    "make_embedding_provider",
    "make_generation_provider",
]
