#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Векторный индекс в памяти процесса: upsert / search / delete.

Поиск - полный перебор с косинусным сходством, O(N·D) на запрос. Это не
ANN-структура: для сублинейного поиска компонент заменяется целиком, контракт
upsert/search/delete и порядок при равных score должны сохраниться.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from .errors import DimensionMismatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VectorRecord:
    """Запись индекса. Вектор хранится как read-only копия."""
    id: str
    vector: np.ndarray
    payload: Dict[str, str]
    inserted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class SearchHit:
    """Результат поиска: id записи, косинусное сходство и payload."""
    id: str
    score: float
    payload: Dict[str, str]


def _as_vector(values: Sequence[float]) -> np.ndarray:
    arr = np.array(values, dtype=np.float64)
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError(f"Expected a non-empty 1-D vector, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a|·|b|); 0.0, если длина одного из векторов нулевая."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(expected=va.shape[-1], actual=vb.shape[-1])
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


class InMemoryVectorIndex:
    """Хранилище троек (id, vector, payload) с top-K поиском.

    Все операции выполняются под общей блокировкой индекса: поиск видит
    запись либо целиком (вектор и payload вместе), либо не видит вовсе, а
    конкурентные upsert одного id сериализуются (побеждает последний).

    Порядок записей в словаре - порядок вставки; перезапись id считается
    новой вставкой и переносит запись в конец. Он же разрешает равные score.
    """

    def __init__(self) -> None:
        self._records: Dict[str, VectorRecord] = {}
        self._lock = threading.RLock()

    @property
    def dimension(self) -> Optional[int]:
        """Размерность индекса; None, пока индекс пуст."""
        with self._lock:
            for rec in self._records.values():
                return int(rec.vector.shape[0])
            return None

    def _dimension_excluding(self, record_id: str) -> Optional[int]:
        for rid, rec in self._records.items():
            if rid != record_id:
                return int(rec.vector.shape[0])
        return None

    def upsert(self, record_id: str, vector: Sequence[float], payload: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Вставляет или полностью заменяет запись `record_id`.

        DimensionMismatchError, если другая запись индекса имеет вектор иной
        длины; состояние индекса при этом не меняется.
        """
        vec = _as_vector(vector)
        record = VectorRecord(id=record_id, vector=vec, payload=dict(payload or {}))
        with self._lock:
            expected = self._dimension_excluding(record_id)
            if expected is not None and expected != vec.shape[0]:
                raise DimensionMismatchError(expected=expected, actual=int(vec.shape[0]))
            self._records.pop(record_id, None)
            self._records[record_id] = record
        logger.debug("Stored vector for %s (dim=%d)", record_id, vec.shape[0])
        return {"id": record_id}

    def search(self, query_vector: Sequence[float], k: int = 3) -> List[SearchHit]:
        """Возвращает до k записей по убыванию косинусного сходства.

        Пустой индекс -> пустой список. Равные score сохраняют порядок вставки.
        """
        query = _as_vector(query_vector)
        if k <= 0:
            return []

        with self._lock:
            records = list(self._records.values())
            if not records:
                logger.debug("Search on empty index")
                return []

            dim = records[0].vector.shape[0]
            if query.shape[0] != dim:
                raise DimensionMismatchError(expected=int(dim), actual=int(query.shape[0]))

            matrix = np.vstack([r.vector for r in records])
            norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
            dots = matrix @ query
            scores = np.zeros(len(records), dtype=np.float64)
            nonzero = norms != 0
            scores[nonzero] = dots[nonzero] / norms[nonzero]
            # погрешность округления может дать 1.0000000000000002
            np.clip(scores, -1.0, 1.0, out=scores)

            order = np.argsort(-scores, kind="stable")[:k]
            hits = [
                SearchHit(id=records[i].id, score=float(scores[i]), payload=dict(records[i].payload))
                for i in order
            ]

        logger.debug("Found %d similar records", len(hits))
        return hits

    def delete(self, record_id: str) -> None:
        """Удаляет запись; отсутствие id - не ошибка."""
        with self._lock:
            removed = self._records.pop(record_id, None)
        if removed is not None:
            logger.debug("Deleted vector %s", record_id)

    def get(self, record_id: str) -> Optional[VectorRecord]:
        with self._lock:
            return self._records.get(record_id)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._records

    def __iter__(self) -> Iterator[VectorRecord]:
        with self._lock:
            return iter(list(self._records.values()))
