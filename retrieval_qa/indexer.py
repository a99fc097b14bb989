#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from llama_index.core import SimpleDirectoryReader
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .config import IngestConfig
from .documents import DocumentStore
from .embeddings import EmbeddingProvider
from .errors import EmptyContentError, IngestFailedError, UnsupportedFileTypeError
from .vectorstore import InMemoryVectorIndex

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Результат индексации одного документа."""
    document_id: str
    index_id: str
    title: str


@dataclass
class IngestReport:
    """Итог пакетной индексации директории: успешные документы и ошибки по файлам."""
    ingested: List[IngestResult] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)


class IngestPipeline:
    """Индексация документа: DocumentStore -> эмбеддинг -> векторный индекс.

    1) Выводит заголовок и сниппет из текста
    2) Сохраняет документ в DocumentStore и получает его id
    3) Строит эмбеддинг по полному тексту
    4) Кладёт вектор в индекс под тем же id (связь 1:1 с DocumentStore)

    Состояния между вызовами не держит: все коллабораторы передаются в конструктор.
    """
    def __init__(
        self,
        embedder: EmbeddingProvider,
        documents: DocumentStore,
        index: InMemoryVectorIndex,
        cfg: Optional[IngestConfig] = None,
    ) -> None:
        self._embedder = embedder
        self._documents = documents
        self._index = index
        self._cfg = cfg or IngestConfig()

    def make_title(self, text: str) -> str:
        """Первая строка текста, не длиннее title_max_chars; иначе default_title."""
        first_line = text.split("\n")[0][: self._cfg.title_max_chars]
        return first_line or self._cfg.default_title

    def make_snippet(self, text: str) -> str:
        limit = self._cfg.snippet_chars
        if len(text) > limit:
            return text[:limit] + self._cfg.truncation_marker
        return text

    def ingest(self, text: str, source: Optional[str] = None) -> IngestResult:
        """Индексирует один документ.

        EmptyContentError - до любого обращения к коллабораторам. Любая ошибка
        шагов ниже оборачивается в IngestFailedError; уже созданный в
        DocumentStore документ не откатывается.
        """
        if text is None or not text.strip():
            raise EmptyContentError()
        source = source or self._cfg.default_source

        title = self.make_title(text)
        snippet = self.make_snippet(text)
        logger.info("Ingesting document from: %s", source)

        try:
            logger.debug("Saving to document store...")
            document_id = self._documents.create(title=title, snippet=snippet, full_text=text, source=source)

            logger.debug("Creating embedding for %s...", document_id)
            vector = self._embedder.embed(text)

            logger.debug("Storing vector for %s...", document_id)
            stored = self._index.upsert(document_id, vector, {"title": title, "source": source, "snippet": snippet})
        except Exception as exc:
            logger.error("Ingest pipeline error for %s: %s", source, exc, exc_info=True)
            raise IngestFailedError(exc) from exc

        logger.info("Document %s ingested successfully", document_id)
        return IngestResult(document_id=document_id, index_id=stored["id"], title=title)

    def _load_directory(self, data_dir: str) -> Dict[str, Tuple[str, str]]:
        """Читает документы директории и склеивает страницы одного файла.

        SimpleDirectoryReader отдаёт PDF постранично. Ключ - путь файла
        (одинаковые имена в разных поддиректориях - разные документы),
        значение - пара (source, text), где source - имя файла.
        """
        p = Path(data_dir)
        if not p.exists():
            raise FileNotFoundError(f"Data dir not found: {p}")
        try:
            reader = SimpleDirectoryReader(
                input_dir=str(p),
                recursive=True,
                required_exts=list(self._cfg.required_exts),
            )
        except ValueError as exc:
            # ридер отказывается работать с директорией без подходящих файлов
            logger.info("No supported files in %s: %s", p, exc)
            return {}
        sources: Dict[str, str] = {}
        texts: Dict[str, List[str]] = {}
        for d in reader.load_data():
            meta = d.metadata or {}
            path = meta.get("file_path") or meta.get("file_name") or self._cfg.default_source
            sources.setdefault(path, meta.get("file_name") or self._cfg.default_source)
            texts.setdefault(path, []).append(d.text or "")
        return {path: (sources[path], "\n".join(parts)) for path, parts in texts.items()}

    def ingest_directory(self, data_dir: str) -> IngestReport:
        """Индексирует все поддерживаемые файлы директории.

        Ошибка одного файла попадает в report.errors (ключ - путь файла) и не
        прерывает остальные. Директория без поддерживаемых файлов - пустой отчёт.
        """
        report = IngestReport()
        for path, (source, text) in self._load_directory(data_dir).items():
            try:
                report.ingested.append(self.ingest(text, source))
            except (EmptyContentError, IngestFailedError) as exc:
                logger.warning("Skipping %s: %s", path, exc)
                report.errors[path] = str(exc)
        logger.info("Directory %s: %d ingested, %d failed", data_dir, len(report.ingested), len(report.errors))
        return report


TEXT_CONTENT_TYPES = ("text/plain", "text/markdown")
PDF_CONTENT_TYPE = "application/pdf"


def extract_text(filename: str, content_type: Optional[str], data: bytes) -> str:
    """Извлекает текст из загруженного файла (txt/md как UTF-8, pdf через pypdf)."""
    suffix = Path(filename or "").suffix.lower()
    ctype = (content_type or "").split(";")[0].strip().lower()

    if ctype == PDF_CONTENT_TYPE or suffix == ".pdf":
        try:
            reader = PdfReader(io.BytesIO(data))
            return "\n".join((page.extract_text() or "") for page in reader.pages)
        except PdfReadError as exc:
            logger.warning("Unreadable PDF %s: %s", filename, exc)
            raise UnsupportedFileTypeError(f"Could not read PDF file: {exc}") from exc
    if ctype in TEXT_CONTENT_TYPES or suffix in (".txt", ".md"):
        return data.decode("utf-8", errors="replace")
    raise UnsupportedFileTypeError("Unsupported file type. Use PDF or TXT.")
