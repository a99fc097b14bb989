#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Хранилище документов (document of record).

Держит полный текст, заголовок и сниппет документа и выдаёт непрозрачный id,
который затем служит ключом в векторном индексе.
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .errors import DocumentNotFoundError


@dataclass(frozen=True)
class StoredDocument:
    id: str
    title: str
    snippet: str
    full_text: str
    source: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DocumentStore(ABC):
    """Интерфейс хранилища документов."""

    @abstractmethod
    def create(self, title: str, snippet: str, full_text: str, source: str) -> str:
        """Сохраняет документ и возвращает его id."""

    @abstractmethod
    def get(self, doc_id: str) -> StoredDocument:
        """Документ по id; DocumentNotFoundError, если его нет."""

    @abstractmethod
    def query(self, source: Optional[str] = None) -> List[StoredDocument]:
        """Документы в порядке создания, опционально только из `source`."""

    def __len__(self) -> int:
        return len(self.query())


class InMemoryDocumentStore(DocumentStore):
    """Потокобезопасное хранилище в памяти процесса.

    - id_factory: генератор id (по умолчанию uuid4().hex)
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None) -> None:
        self._docs: Dict[str, StoredDocument] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def create(self, title: str, snippet: str, full_text: str, source: str) -> str:
        doc_id = self._id_factory()
        doc = StoredDocument(
            id=doc_id,
            title=title or "Untitled Document",
            snippet=snippet,
            full_text=full_text,
            source=source,
        )
        with self._lock:
            self._docs[doc_id] = doc
        return doc_id

    def get(self, doc_id: str) -> StoredDocument:
        with self._lock:
            doc = self._docs.get(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        return doc

    def query(self, source: Optional[str] = None) -> List[StoredDocument]:
        with self._lock:
            docs = list(self._docs.values())
        if source is not None:
            docs = [d for d in docs if d.source == source]
        return docs

    def __len__(self) -> int:
        with self._lock:
            return len(self._docs)
