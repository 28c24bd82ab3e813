"""Row types and collaborators shared by the test suite."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from lazyorm.errors import FetchError
from lazyorm.mapping.metadata import FieldDescriptor, Flag, SemanticType, column, entity, register_type


@entity
@dataclass
class User:
    id: Optional[int] = column(SemanticType.INTEGER, primary_key=True)
    name: Optional[str] = column(SemanticType.TEXT)
    avatar: Optional[bytes] = column(SemanticType.RAW_BYTES, deferred_remote=True)

    def display_name(self) -> str:
        return (self.name or "").upper()

    def avatar_bytes(self) -> Optional[bytes]:
        return self.avatar


@entity
@dataclass
class Note:
    noteId: Optional[str] = column(SemanticType.TEXT, primary_key=True)
    bodyText: Optional[str] = column(SemanticType.TEXT)
    attachment: Optional[bytes] = column(SemanticType.RAW_BYTES)
    pageCount: Optional[int] = column(SemanticType.INTEGER)
    cached: str = "transient"


@entity
@dataclass
class Keyless:
    label: Optional[str] = column(SemanticType.TEXT)


class Sensor:
    def __init__(self) -> None:
        self.serial = None
        self.reading = None


register_type(
    Sensor,
    [
        FieldDescriptor("serial", SemanticType.TEXT, {Flag.PERSISTABLE, Flag.PRIMARY_KEY}),
        FieldDescriptor("reading", SemanticType.INTEGER),
    ],
)


class CountingFetcher:
    """Records requested URLs and answers with a predictable payload."""

    def __init__(self, failures: int = 0) -> None:
        self.calls: List[str] = []
        self._failures = failures

    def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        if self._failures:
            self._failures -= 1
            raise FetchError(url, "unreachable")
        return b"fetched:" + url.encode("utf-8")
