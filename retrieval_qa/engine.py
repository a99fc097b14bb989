#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from llama_index.core import PromptTemplate

from .config import RetrievalConfig
from .documents import DocumentStore
from .embeddings import EmbeddingProvider
from .errors import InvalidQueryError, QueryFailedError
from .llm import GenerationProvider
from .vectorstore import InMemoryVectorIndex, SearchHit

logger = logging.getLogger(__name__)


QA_PROMPT = PromptTemplate(
    "You are a helpful research assistant. Answer the user's question based on the provided contexts.\n"
    "\n"
    "Context:\n"
    "{context_str}\n"
    "\n"
    "Question: {query_str}\n"
    "\n"
    "Provide a clear, concise answer based on the contexts above. "
    "If the contexts don't contain enough information, say so."
)


@dataclass
class Context:
    """Контекст для промпта: текст документа, его score и заголовок."""
    text: str
    score: float
    title: str


@dataclass
class ContextItem:
    """Публичная часть контекста (заголовок в ответ не попадает)."""
    text: str
    score: float


@dataclass
class QueryResult:
    answer: str
    contexts: List[ContextItem] = field(default_factory=list)


def format_contexts(contexts: List[Context]) -> str:
    """Склеивает контексты в блоки `Context i (relevance: 0.123):` в порядке выдачи."""
    return "\n\n".join(
        f"Context {i} (relevance: {ctx.score:.3f}):\n{ctx.text}" for i, ctx in enumerate(contexts, 1)
    )


class QueryPipeline:
    """Ответ на вопрос по проиндексированным документам.

    - эмбеддинг вопроса и top-K поиск в векторном индексе
    - подтягивание текста из DocumentStore; при ошибке - сниппет из payload хита
    - сборка промпта и генерация ответа
    """
    def __init__(
        self,
        embedder: EmbeddingProvider,
        index: InMemoryVectorIndex,
        documents: DocumentStore,
        generator: GenerationProvider,
        cfg: Optional[RetrievalConfig] = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._documents = documents
        self._generator = generator
        self._cfg = cfg or RetrievalConfig()

    def _context_for_hit(self, hit: SearchHit) -> Context:
        """Строит контекст по хиту; отказ DocumentStore не прерывает запрос."""
        try:
            doc = self._documents.get(hit.id)
        except Exception as exc:
            logger.warning("Could not fetch document %s: %s", hit.id, exc)
            return Context(
                text=hit.payload.get("snippet") or "Content unavailable",
                score=hit.score,
                title=hit.payload.get("title") or "Untitled",
            )

        text = doc.snippet or (doc.full_text or "")[: self._cfg.fulltext_context_chars] or "No content"
        return Context(text=text, score=hit.score, title=doc.title)

    def build_prompt(self, question: str, contexts: List[Context]) -> str:
        return QA_PROMPT.format(context_str=format_contexts(contexts), query_str=question)

    def query(self, question: str, k: Optional[int] = None) -> QueryResult:
        """Выполняет вопрос и возвращает ответ с контекстами по убыванию score.

        InvalidQueryError - пустой вопрос или k вне [1, max_top_k]; ошибки
        эмбеддинга, поиска и генерации - QueryFailedError.
        """
        if question is None or not question.strip():
            raise InvalidQueryError('Query parameter "q" is required')
        top_k = self._cfg.top_k if k is None else k
        if not 1 <= top_k <= self._cfg.max_top_k:
            raise InvalidQueryError(f"k must be between 1 and {self._cfg.max_top_k}")

        logger.info("Processing query: %r (k=%d)", question, top_k)
        try:
            query_vector = self._embedder.embed(question)
            hits = self._index.search(query_vector, top_k)
            if not hits:
                logger.info("No vectors matched, returning fixed answer")
                return QueryResult(answer=self._cfg.no_results_answer, contexts=[])

            contexts = [self._context_for_hit(hit) for hit in hits]
            prompt = self.build_prompt(question, contexts)

            logger.debug("Generating answer from %d contexts...", len(contexts))
            answer = self._generator.generate(prompt)
        except Exception as exc:
            logger.error("Query pipeline error: %s", exc, exc_info=True)
            raise QueryFailedError(exc) from exc

        logger.info("Query completed with %d contexts", len(contexts))
        return QueryResult(
            answer=answer,
            contexts=[ContextItem(text=c.text, score=c.score) for c in contexts],
        )
