"""Field identifier to column identifier translation."""
from __future__ import annotations

import re

_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def camel_to_snake(name: str) -> str:
    """Convert ``avatarUrl`` / ``HTTPSource`` style names to snake case."""
    value = _ACRONYM_RE.sub(r"\1_\2", name)
    value = _BOUNDARY_RE.sub(r"\1_\2", value)
    return value.lower()


def is_identifier(name: str) -> bool:
    """Return True when ``name`` can be spliced into SQL unquoted."""
    return bool(_IDENTIFIER_RE.match(name))
