"""Resolve a resume's file reference to the stored document bytes."""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from models.errors import DocumentUnavailableError

logger = logging.getLogger(__name__)


class DocumentSource(ABC):
    @abstractmethod
    async def fetch(self, file_reference: str) -> bytes:
        """Return the document bytes or raise DocumentUnavailableError."""


class LocalDocumentSource(DocumentSource):
    """Documents stored as files under one root directory.

    References are relative keys such as ``resumes/2024/jane.pdf``;
    a leading ``.../resumes/`` URL prefix is tolerated and stripped.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, file_reference: str) -> Path:
        key = file_reference.split("/resumes/", 1)[-1].lstrip("/")
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise DocumentUnavailableError(f"File reference escapes document root: {file_reference}")
        return path

    async def fetch(self, file_reference: str) -> bytes:
        path = self._resolve(file_reference)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            logger.warning("Could not read document %s: %s", path, e)
            raise DocumentUnavailableError("Failed to download file from storage") from e


class InMemoryDocumentSource(DocumentSource):
    """Documents held in a dict keyed by file reference."""

    def __init__(self, documents: dict[str, bytes] | None = None) -> None:
        self.documents: dict[str, bytes] = dict(documents or {})

    async def fetch(self, file_reference: str) -> bytes:
        try:
            return self.documents[file_reference]
        except KeyError:
            raise DocumentUnavailableError("Failed to download file from storage") from None
