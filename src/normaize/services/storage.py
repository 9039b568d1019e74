"""
Byte sources holding the original upload bytes, so datasets can be reprocessed.
"""

import os
import re
import threading
from abc import ABC, abstractmethod
from typing import Dict

from normaize.utils.exceptions import DatasetNotFoundError
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

_SAFE_IDENTIFIER = re.compile(r"^[A-Za-z0-9._-]+$")


class ByteSource(ABC):
    """
    Storage abstraction for raw file bytes keyed by identifier.
    """

    @abstractmethod
    def read_all(self, identifier: str) -> bytes:
        """Return every byte stored under `identifier`."""

    @abstractmethod
    def exists(self, identifier: str) -> bool:
        """Whether `identifier` is stored."""

    @abstractmethod
    def save(self, identifier: str, content: bytes) -> None:
        """Store `content` under `identifier`, replacing any previous bytes."""

    @abstractmethod
    def delete(self, identifier: str) -> None:
        """Remove `identifier` if present."""


class InMemoryByteSource(ByteSource):
    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def read_all(self, identifier: str) -> bytes:
        with self._lock:
            if identifier not in self._blobs:
                raise DatasetNotFoundError(f"No stored content for '{identifier}'.")
            return self._blobs[identifier]

    def exists(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._blobs

    def save(self, identifier: str, content: bytes) -> None:
        with self._lock:
            self._blobs[identifier] = bytes(content)

    def delete(self, identifier: str) -> None:
        with self._lock:
            self._blobs.pop(identifier, None)


class LocalByteSource(ByteSource):
    """Files under a local directory, one file per identifier."""

    def __init__(self, root: str) -> None:
        self.root = root
        os.makedirs(root, exist_ok=True)

    def _path(self, identifier: str) -> str:
        if not _SAFE_IDENTIFIER.match(identifier) or identifier in (".", ".."):
            raise ValueError(f"Invalid storage identifier: '{identifier}'")
        return os.path.join(self.root, identifier)

    def read_all(self, identifier: str) -> bytes:
        path = self._path(identifier)
        if not os.path.isfile(path):
            raise DatasetNotFoundError(f"No stored content for '{identifier}'.")
        with open(path, "rb") as fh:
            return fh.read()

    def exists(self, identifier: str) -> bool:
        return os.path.isfile(self._path(identifier))

    def save(self, identifier: str, content: bytes) -> None:
        path = self._path(identifier)
        with open(path, "wb") as fh:
            fh.write(content)
        logger.info(f"Stored {len(content)} bytes at {path}")

    def delete(self, identifier: str) -> None:
        path = self._path(identifier)
        if os.path.isfile(path):
            os.remove(path)
