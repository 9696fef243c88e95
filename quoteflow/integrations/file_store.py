"""Binary storage for inquiry drawings and quotation PDFs."""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from pathlib import Path

import requests
from werkzeug.utils import secure_filename

from quoteflow.errors import DependencyFailure, NotFound
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.integrations.file_store")


class FileStore(ABC):
    @abstractmethod
    def store(self, data: bytes, metadata: dict) -> str:
        """Persist ``data`` and return an opaque locator."""

    @abstractmethod
    def retrieve(self, locator: str) -> bytes:
        ...

    @abstractmethod
    def delete(self, locator: str) -> None:
        ...


class LocalFileStore(FileStore):
    """
    Stores files under ``root``. Locators look like ``local://inquiries/<name>``.
    External ``http(s)`` locators are fetched with a timeout.
    """

    SCHEME = "local://"

    def __init__(self, root: str | Path, timeout: float = 10):
        self.root = Path(root)
        self.timeout = timeout

    def _path_for(self, locator: str) -> Path:
        if not locator.startswith(self.SCHEME):
            raise NotFound(f"Unknown file locator: {locator}")
        relative = Path(locator[len(self.SCHEME):])
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            raise NotFound("File not found")
        return path

    def store(self, data, metadata):
        folder = secure_filename(metadata.get("folder", "misc")) or "misc"
        original = secure_filename(metadata.get("filename", "file")) or "file"
        stored_name = f"{uuid.uuid4().hex[:12]}_{original}"
        target = self.root / folder
        target.mkdir(parents=True, exist_ok=True)
        try:
            (target / stored_name).write_bytes(data)
        except OSError as e:
            raise DependencyFailure(f"Could not store file: {e}") from e
        logger.info(f"Stored {len(data)} bytes as {folder}/{stored_name}")
        return f"{self.SCHEME}{folder}/{stored_name}"

    def retrieve(self, locator):
        if locator.startswith(("http://", "https://")):
            try:
                response = requests.get(locator, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise DependencyFailure(f"Could not fetch {locator}: {e}") from e
            return response.content

        path = self._path_for(locator)
        if not path.exists():
            raise NotFound("File not found")
        return path.read_bytes()

    def delete(self, locator):
        if not locator or not locator.startswith(self.SCHEME):
            return
        path = self._path_for(locator)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted {locator}")
