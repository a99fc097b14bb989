"""
Тесты провайдеров эмбеддингов: mock на хэше, фабрика по конфигу, fallback.

Интеграционный тест с HuggingFace (медленный, скачивает модель):
  RAG_RUN_INTEGRATION=1 pytest -q tests/test_embeddings.py -k integration
"""

import math
import os
from typing import Any, List

import pytest

from retrieval_qa import embeddings as emb_mod
from retrieval_qa.config import EmbeddingConfig
from retrieval_qa.embeddings import (
    EmbeddingProvider,
    HashEmbedding,
    OpenAICompatEmbedding,
    make_embedding_model,
    make_embedding_provider,
)


class _BrokenEmbedding(HashEmbedding):
    """Модель, у которой каждый вызов падает (как недоступный API)."""

    def _get_text_embedding(self, text: str) -> List[float]:
        raise ConnectionError("embedding API unreachable")


def test_hash_embedding_is_deterministic_and_unit_norm() -> None:
    model = HashEmbedding(dimension=32)
    v1 = model.get_text_embedding("Quantum computing uses superposition.")
    v2 = model.get_text_embedding("Quantum computing uses superposition.")

    assert v1 == v2
    assert len(v1) == 32
    assert math.sqrt(sum(x * x for x in v1)) == pytest.approx(1.0)


def test_hash_embedding_differs_between_texts() -> None:
    model = HashEmbedding(dimension=32)
    assert model.get_text_embedding("alpha") != model.get_text_embedding("beta")


def test_hash_embedding_query_matches_text() -> None:
    model = HashEmbedding(dimension=16)
    assert model.get_query_embedding("same") == model.get_text_embedding("same")


def test_provider_falls_back_on_error() -> None:
    provider = EmbeddingProvider(_BrokenEmbedding(dimension=8), fallback=HashEmbedding(dimension=8))
    vec = provider.embed("hello")
    assert vec == HashEmbedding(dimension=8).get_text_embedding("hello")


def test_provider_without_fallback_propagates() -> None:
    provider = EmbeddingProvider(_BrokenEmbedding(dimension=8))
    with pytest.raises(ConnectionError):
        provider.embed("hello")


def test_provider_dimension() -> None:
    assert EmbeddingProvider(HashEmbedding(dimension=12)).dimension == 12


def test_make_mock_model() -> None:
    model = make_embedding_model(EmbeddingConfig(provider="mock", dimension=10))
    assert isinstance(model, HashEmbedding)
    assert model.dimension == 10


def test_make_openai_without_key_uses_mock() -> None:
    model = make_embedding_model(EmbeddingConfig(provider="openai", api_key=None))
    assert isinstance(model, HashEmbedding)


def test_make_openai_with_key() -> None:
    model = make_embedding_model(
        EmbeddingConfig(provider="openai", api_key="sk-test", base_url="http://localhost:9/v1", model_name="emb")
    )
    assert isinstance(model, OpenAICompatEmbedding)
    assert model.model_name == "emb"


def test_make_huggingface_model(monkeypatch) -> None:
    created = {}

    class _DummyHF(HashEmbedding):
        def __init__(self, model_name: str, embed_batch_size: int, **kwargs: Any) -> None:
            super().__init__(dimension=4)
            created["model_name"] = model_name

    # Подменяем HuggingFaceEmbedding, чтобы не скачивать модель
    monkeypatch.setattr(emb_mod, "HuggingFaceEmbedding", _DummyHF)
    provider = make_embedding_provider(EmbeddingConfig(provider="huggingface", model_name="BAAI/bge-small-en-v1.5"))

    assert created["model_name"] == "BAAI/bge-small-en-v1.5"
    assert len(provider.embed("text")) == 4


def test_fallback_is_configurable() -> None:
    cfg = EmbeddingConfig(provider="openai", api_key="sk-test", base_url="http://localhost:9/v1", fallback_to_mock=False)
    provider = make_embedding_provider(cfg)
    assert provider._fallback is None

    cfg.fallback_to_mock = True
    assert isinstance(make_embedding_provider(cfg)._fallback, HashEmbedding)


def test_unknown_provider_rejected() -> None:
    with pytest.raises(ValueError):
        make_embedding_model(EmbeddingConfig(provider="nope"))


@pytest.mark.integration
def test_huggingface_embedding_integration() -> None:
    if os.environ.get("RAG_RUN_INTEGRATION") != "1":
        pytest.skip("Set RAG_RUN_INTEGRATION=1 to run this test")

    provider = make_embedding_provider(EmbeddingConfig(provider="huggingface", fallback_to_mock=False))
    vec = provider.embed("Retrieval augmented generation")
    assert len(vec) == 384
