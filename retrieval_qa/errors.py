#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Иерархия ошибок пайплайна.

У каждой ошибки есть стабильный `kind`, который HTTP-слой отдаёт клиенту
вместе с сообщением.
"""

from typing import Optional


class PipelineError(Exception):
    """Базовая ошибка ядра: `kind` + человекочитаемое сообщение."""
    kind = "PipelineError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class EmptyContentError(PipelineError):
    """Документ пуст после обрезки пробелов."""
    kind = "EmptyContent"

    def __init__(self, message: str = "Empty content") -> None:
        super().__init__(message)


class InvalidQueryError(PipelineError):
    """Пустой вопрос или недопустимый top_k."""
    kind = "InvalidQuery"


class DimensionMismatchError(PipelineError):
    kind = "DimensionMismatch"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Vector dimension mismatch: index has {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class _WrappedError(PipelineError):
    """Ошибка-обёртка: сохраняет исходную причину в `cause`."""
    prefix = ""

    def __init__(self, cause: BaseException, message: Optional[str] = None) -> None:
        super().__init__(message or f"{self.prefix}: {cause}")
        self.cause = cause


class IngestFailedError(_WrappedError):
    kind = "IngestFailed"
    prefix = "Failed to ingest document"


class QueryFailedError(_WrappedError):
    kind = "QueryFailed"
    prefix = "Failed to process query"


class DocumentNotFoundError(PipelineError):
    """Документ с таким id отсутствует в DocumentStore."""
    kind = "NotFound"

    def __init__(self, doc_id: str) -> None:
        super().__init__(f"Document not found: {doc_id}")
        self.doc_id = doc_id


class UnsupportedFileTypeError(PipelineError):
    kind = "UnsupportedFileType"
