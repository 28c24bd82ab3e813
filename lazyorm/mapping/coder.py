"""Conversion between in-memory field values and SQLite parameters/results."""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from lazyorm.errors import UnsupportedType, ValueCodingError
from lazyorm.mapping.metadata import FieldDescriptor, SemanticType

_SQL_TYPES: Dict[SemanticType, str] = {
    SemanticType.TEXT: "TEXT",
    SemanticType.INTEGER: "INTEGER",
    SemanticType.RAW_BYTES: "BLOB",
}

_URL_PREFIXES: Tuple[bytes, ...] = (b"http://", b"https://")

_INTEGER_MIN = -(2**63)
_INTEGER_MAX = 2**63 - 1


def _lookup(semantic_type: Any, field_name: Optional[str]) -> SemanticType:
    try:
        return SemanticType(semantic_type)
    except ValueError:
        raise UnsupportedType(semantic_type, field_name=field_name) from None


def sql_type(semantic_type: Any, *, field_name: Optional[str] = None) -> str:
    """Return the column type used for ``semantic_type``."""
    return _SQL_TYPES[_lookup(semantic_type, field_name)]


def encode(value: Any, semantic_type: Any, *, field_name: Optional[str] = None) -> Any:
    """Convert ``value`` into a parameter for a positional placeholder."""
    kind = _lookup(semantic_type, field_name)
    if value is None:
        return None
    if kind is SemanticType.TEXT:
        if not isinstance(value, str):
            raise ValueCodingError(_mismatch(field_name, "str", value))
        return value
    if kind is SemanticType.INTEGER:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueCodingError(_mismatch(field_name, "int", value))
        if not _INTEGER_MIN <= value <= _INTEGER_MAX:
            label = field_name or "value"
            raise ValueCodingError(f"{label} {value} does not fit a signed 64-bit INTEGER")
        return value
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValueCodingError(_mismatch(field_name, "bytes", value))
    return bytes(value)


def decode(value: Any, semantic_type: Any, *, field_name: Optional[str] = None) -> Any:
    """Convert a result column back into the field's in-memory type."""
    kind = _lookup(semantic_type, field_name)
    if value is None:
        return None
    if kind is SemanticType.TEXT:
        return value if isinstance(value, str) else str(value)
    if kind is SemanticType.INTEGER:
        return int(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def encode_field(instance: Any, descriptor: FieldDescriptor) -> Any:
    return encode(getattr(instance, descriptor.name), descriptor.semantic_type, field_name=descriptor.name)


def looks_like_url(value: Any) -> bool:
    """True for byte payloads that spell an HTTP(S) URL."""
    if not isinstance(value, (bytes, bytearray)):
        return False
    if not bytes(value[:8]).lower().startswith(_URL_PREFIXES):
        return False
    try:
        bytes(value).decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _mismatch(field_name: Optional[str], expected: str, value: Any) -> str:
    label = field_name or "value"
    return f"{label} expects {expected}, got {type(value).__name__}"
