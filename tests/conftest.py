"""Общие фикстуры и заглушки коллабораторов для тестов пайплайнов."""

from typing import Dict, List, Optional, Sequence

import pytest

from retrieval_qa.documents import InMemoryDocumentStore, StoredDocument
from retrieval_qa.embeddings import EmbeddingProvider, HashEmbedding
from retrieval_qa.vectorstore import InMemoryVectorIndex


class FakeEmbedder:
    """Эмбеддер с заранее заданными векторами; запоминает все вызовы."""

    def __init__(self, vectors: Optional[Dict[str, Sequence[float]]] = None, default: Sequence[float] = (1.0, 0.0, 0.0)) -> None:
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


class FakeGenerator:
    """Генератор, возвращающий фиксированный ответ и сохраняющий промпты."""

    def __init__(self, answer: str = "[dummy-answer]") -> None:
        self.answer = answer
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


class FlakyDocumentStore(InMemoryDocumentStore):
    """Хранилище, у которого get() падает для заданных id."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail_ids = set()
        self.get_calls: List[str] = []
        self.create_calls = 0

    def create(self, title: str, snippet: str, full_text: str, source: str) -> str:
        self.create_calls += 1
        return super().create(title=title, snippet=snippet, full_text=full_text, source=source)

    def get(self, doc_id: str) -> StoredDocument:
        self.get_calls.append(doc_id)
        if doc_id in self.fail_ids:
            raise ConnectionError(f"document service unreachable for {doc_id}")
        return super().get(doc_id)


def sequential_ids(prefix: str = "d"):
    counter = {"n": 0}

    def _next() -> str:
        counter["n"] += 1
        return f"{prefix}{counter['n']}"

    return _next


@pytest.fixture
def index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
def documents() -> FlakyDocumentStore:
    return FlakyDocumentStore(id_factory=sequential_ids())


@pytest.fixture
def hash_embedder() -> EmbeddingProvider:
    return EmbeddingProvider(HashEmbedding(dimension=64))


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()
