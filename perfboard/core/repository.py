from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path

from perfboard.core.entries import Entry, PayloadDecodeError, decode_payload, encode_entries

logger = logging.getLogger(__name__)


class StorageError(OSError):
    """The backing store could not be read or written."""


class EntryRepository(ABC):
    """One named slot holding the serialized list of raw entries."""

    def __init__(self, unknown_name: str = "unknown") -> None:
        self.unknown_name = unknown_name

    @abstractmethod
    def read_payload(self) -> str | None:
        """Return the stored text, or None when the slot was never written."""

    @abstractmethod
    def write_payload(self, text: str) -> None: ...

    @abstractmethod
    def remove(self) -> None: ...

    def load(self, today: date | None = None) -> list[Entry]:
        payload = self.read_payload()
        if payload is None:
            return []
        return decode_payload(payload, today=today, unknown_name=self.unknown_name)

    def save(self, entries: list[Entry]) -> None:
        self.write_payload(encode_entries(entries))

    def clear(self) -> None:
        self.remove()


class JsonFileRepository(EntryRepository):
    def __init__(self, directory: Path | str = "data", slot: str = "userData", unknown_name: str = "unknown") -> None:
        super().__init__(unknown_name=unknown_name)
        self.directory = Path(directory)
        self.slot = slot

    @property
    def path(self) -> Path:
        return self.directory / f"{self.slot}.json"

    def read_payload(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as error:
            raise PayloadDecodeError(f"Storage slot {self.path} is not valid UTF-8: {error.reason}") from error
        except OSError as error:
            raise StorageError(f"Failed to read storage slot {self.path}: {error}") from error

    def write_payload(self, text: str) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")
        except OSError as error:
            raise StorageError(f"Failed to write storage slot {self.path}: {error}") from error
        logger.debug("Wrote %d bytes to %s", len(text), self.path)

    def remove(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as error:
            raise StorageError(f"Failed to remove storage slot {self.path}: {error}") from error


class InMemoryRepository(EntryRepository):
    def __init__(self, payload: str | None = None, unknown_name: str = "unknown") -> None:
        super().__init__(unknown_name=unknown_name)
        self.payload = payload

    def read_payload(self) -> str | None:
        return self.payload

    def write_payload(self, text: str) -> None:
        self.payload = text

    def remove(self) -> None:
        self.payload = None
