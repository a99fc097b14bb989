#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Провайдеры эмбеддингов поверх абстракции LlamaIndex BaseEmbedding."""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional

from llama_index.core.base.embeddings.base import BaseEmbedding
from llama_index.embeddings.huggingface import HuggingFaceEmbedding
from openai import OpenAI
from pydantic import Field, PrivateAttr

from .config import EmbeddingConfig

logger = logging.getLogger(__name__)


def _string_hash32(text: str) -> int:
    """32-битный знаковый хэш строки (h = h*31 + code)."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


class HashEmbedding(BaseEmbedding):
    """Детерминированный псевдо-эмбеддинг из хэша текста.

    Одинаковый текст всегда даёт одинаковый единичный вектор. Используется как
    mock-режим и как запасной вариант при недоступности основной модели.
    """
    dimension: int = Field(default=384, gt=0)

    def __init__(self, dimension: int = 384, **kwargs: Any) -> None:
        super().__init__(dimension=dimension, model_name=f"hash-{dimension}", **kwargs)

    @classmethod
    def class_name(cls) -> str:
        return "HashEmbedding"

    def _embed(self, text: str) -> List[float]:
        h = _string_hash32(text)
        vector = []
        for i in range(self.dimension):
            seed = h + i
            vector.append(math.sin(seed) * 0.5 + math.cos(seed * 0.7) * 0.5)
        magnitude = math.sqrt(sum(v * v for v in vector))
        if magnitude == 0:
            return vector
        return [v / magnitude for v in vector]

    def _get_query_embedding(self, query: str) -> List[float]:
        return self._embed(query)

    async def _aget_query_embedding(self, query: str) -> List[float]:
        return self._embed(query)

    def _get_text_embedding(self, text: str) -> List[float]:
        return self._embed(text)


class OpenAICompatEmbedding(BaseEmbedding):
    """Адаптер BaseEmbedding для OpenAI-совместимого эндпоинта /embeddings."""
    _client: OpenAI = PrivateAttr()

    def __init__(self, base_url: Optional[str], api_key: str, model_name: str = "text-embedding-ada-002", **kwargs: Any) -> None:
        super().__init__(model_name=model_name, **kwargs)
        self._client = OpenAI(base_url=base_url, api_key=api_key)

    @classmethod
    def class_name(cls) -> str:
        return "OpenAICompatEmbedding"

    def _get_text_embedding(self, text: str) -> List[float]:
        resp = self._client.embeddings.create(model=self.model_name, input=text)
        return list(resp.data[0].embedding)

    def _get_query_embedding(self, query: str) -> List[float]:
        return self._get_text_embedding(query)

    async def _aget_query_embedding(self, query: str) -> List[float]:
        return self._get_text_embedding(query)


class EmbeddingProvider:
    """Превращает текст в вектор фиксированной размерности.

    Если задан `fallback`, любая ошибка основной модели логируется и текст
    эмбеддится запасной моделью; без него ошибка пробрасывается вызывающему.
    """

    def __init__(self, model: BaseEmbedding, fallback: Optional[BaseEmbedding] = None) -> None:
        self._model = model
        self._fallback = fallback
        self._dimension: Optional[int] = getattr(model, "dimension", None)

    @property
    def model(self) -> BaseEmbedding:
        return self._model

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.embed("test"))
        return self._dimension

    def embed(self, text: str) -> List[float]:
        try:
            return list(self._model.get_text_embedding(text))
        except Exception as exc:
            if self._fallback is None:
                raise
            logger.warning("Embedding error (%s), falling back to %s", exc, self._fallback.class_name())
            return list(self._fallback.get_text_embedding(text))


def make_embedding_model(cfg: EmbeddingConfig) -> BaseEmbedding:
    """Создаёт модель эмбеддингов по конфигурации.

    - mock: HashEmbedding заданной размерности
    - huggingface: локальная модель через llama-index-embeddings-huggingface
    - openai: OpenAI-совместимый API; без ключа - mock с предупреждением
    """
    provider = cfg.provider.lower()
    if provider == "mock":
        return HashEmbedding(dimension=cfg.dimension)
    if provider == "huggingface":
        return HuggingFaceEmbedding(model_name=cfg.model_name, embed_batch_size=cfg.embed_batch_size)
    if provider == "openai":
        if not cfg.api_key:
            logger.warning("OPENAI_API_KEY not set, using mock embeddings")
            return HashEmbedding(dimension=cfg.dimension)
        return OpenAICompatEmbedding(base_url=cfg.base_url, api_key=cfg.api_key, model_name=cfg.model_name)
    raise ValueError(f"Unknown embedding provider: {cfg.provider}")


def make_embedding_provider(cfg: EmbeddingConfig) -> EmbeddingProvider:
    model = make_embedding_model(cfg)
    fallback = None
    if cfg.fallback_to_mock and not isinstance(model, HashEmbedding):
        fallback = HashEmbedding(dimension=cfg.dimension)
    return EmbeddingProvider(model, fallback=fallback)
