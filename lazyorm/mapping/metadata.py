"""Declarative field metadata for mapped row types.

Every mapped class carries one :class:`TypeDescriptor`, built once when the
class is registered. The descriptor lists the class's fields in declaration
order together with their semantic type and capability flags. Everything the
storage layer generates (DDL, INSERT and SELECT text, bind order) is derived
from that list on every call, so nothing downstream caches column mappings.

Two ways to register a type::

    @entity
    @dataclass
    class User:
        id: int = column(SemanticType.INTEGER, primary_key=True)
        name: str = column(SemanticType.TEXT)
        avatar: bytes = column(SemanticType.RAW_BYTES, deferred_remote=True)

    register_type(LegacyUser, [FieldDescriptor("id", SemanticType.INTEGER, ...)])
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Tuple, Type, TypeVar

from lazyorm.errors import ConfigurationError
from lazyorm.mapping.naming import is_identifier

_DESCRIPTOR_ATTR = "__lazyorm_type__"
_FIELD_METADATA_KEY = "lazyorm"

T = TypeVar("T")


class SemanticType(str, Enum):
    """Value kinds the value coder knows how to store."""

    TEXT = "text"
    INTEGER = "integer"
    RAW_BYTES = "raw_bytes"


class Flag(str, Enum):
    """Capabilities a field may carry."""

    PERSISTABLE = "persistable"
    PRIMARY_KEY = "primary_key"
    DEFERRED_REMOTE = "deferred_remote"


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One declared field: its name, semantic type and flags."""

    name: str
    semantic_type: Any
    flags: FrozenSet[Flag] = frozenset({Flag.PERSISTABLE})

    def __post_init__(self) -> None:
        object.__setattr__(self, "flags", frozenset(self.flags))
        if not is_identifier(self.name):
            raise ConfigurationError(f"Field name {self.name!r} is not a valid identifier")
        needs_persistable = self.flags & {Flag.PRIMARY_KEY, Flag.DEFERRED_REMOTE}
        if needs_persistable and Flag.PERSISTABLE not in self.flags:
            flagged = ", ".join(sorted(flag.value for flag in needs_persistable))
            raise ConfigurationError(f"Field {self.name!r} is flagged {flagged} but not persistable")

    @property
    def persistable(self) -> bool:
        return Flag.PERSISTABLE in self.flags

    @property
    def primary_key(self) -> bool:
        return Flag.PRIMARY_KEY in self.flags

    @property
    def deferred_remote(self) -> bool:
        return Flag.DEFERRED_REMOTE in self.flags


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """Registered metadata for a row type; ``name`` doubles as the table name."""

    name: str
    row_type: type
    fields: Tuple[FieldDescriptor, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        if not is_identifier(self.name):
            raise ConfigurationError(f"Type name {self.name!r} cannot be used as a table name")
        seen = set()
        for descriptor in self.fields:
            if descriptor.name in seen:
                raise ConfigurationError(f"Field {descriptor.name!r} declared twice on {self.name}")
            seen.add(descriptor.name)
        keys = [descriptor.name for descriptor in self.fields if descriptor.primary_key]
        if len(keys) > 1:
            raise ConfigurationError(f"{self.name} declares multiple primary keys: {', '.join(keys)}")


def column(
    semantic_type: Any,
    *,
    primary_key: bool = False,
    deferred_remote: bool = False,
    default: Any = None,
    default_factory: Optional[Callable[[], Any]] = None,
) -> Any:
    """Declare a persistable dataclass field for use with :func:`entity`."""
    flags = {Flag.PERSISTABLE}
    if primary_key:
        flags.add(Flag.PRIMARY_KEY)
    if deferred_remote:
        flags.add(Flag.DEFERRED_REMOTE)
    metadata = {_FIELD_METADATA_KEY: (semantic_type, frozenset(flags))}
    if default_factory is not None:
        return dataclasses.field(default_factory=default_factory, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


def register_type(cls: Type[T], fields: Iterable[FieldDescriptor]) -> Type[T]:
    """Attach an explicit field table to ``cls`` and return the class."""
    descriptor = TypeDescriptor(name=cls.__name__, row_type=cls, fields=tuple(fields))
    setattr(cls, _DESCRIPTOR_ATTR, descriptor)
    return cls


def entity(cls: Type[T]) -> Type[T]:
    """Register a dataclass whose mapped fields were declared with :func:`column`."""
    if not dataclasses.is_dataclass(cls):
        raise ConfigurationError(f"@entity expects a dataclass, got {cls!r}")
    fields: List[FieldDescriptor] = []
    for item in dataclasses.fields(cls):
        declared = item.metadata.get(_FIELD_METADATA_KEY)
        if declared is None:
            continue
        semantic_type, flags = declared
        fields.append(FieldDescriptor(name=item.name, semantic_type=semantic_type, flags=flags))
    return register_type(cls, fields)


def describe(target: Any) -> TypeDescriptor:
    """Return the descriptor registered for a class or for an instance's class."""
    if isinstance(target, type):
        cls = target
    else:
        cls = getattr(target, "__lazyorm_row_type__", None) or type(target)
    descriptor = vars(cls).get(_DESCRIPTOR_ATTR)
    if descriptor is None:
        raise ConfigurationError(f"{cls.__name__} is not a registered row type")
    return descriptor


def persistable_fields(descriptor: TypeDescriptor) -> List[FieldDescriptor]:
    """Fields that are stored and loaded, in declaration order."""
    return [item for item in descriptor.fields if item.persistable]


def primary_key_field(descriptor: TypeDescriptor) -> Optional[FieldDescriptor]:
    """The single primary-key field, or None when there is none or several."""
    keys = [item for item in descriptor.fields if item.primary_key]
    if len(keys) != 1:
        return None
    return keys[0]


def deferred_field_names(descriptor: TypeDescriptor) -> FrozenSet[str]:
    return frozenset(item.name for item in persistable_fields(descriptor) if item.deferred_remote)


def new_instance(descriptor: TypeDescriptor) -> Any:
    """Default-construct a row of ``descriptor``'s type."""
    try:
        return descriptor.row_type()
    except TypeError as exc:
        raise ConfigurationError(f"{descriptor.name} cannot be constructed without arguments") from exc


def key_only(cls: Type[T], key: Any) -> T:
    """Build a template instance whose only populated field is the primary key."""
    descriptor = describe(cls)
    key_field = primary_key_field(descriptor)
    if key_field is None:
        raise ConfigurationError(f"{descriptor.name} has no single primary key")
    instance = new_instance(descriptor)
    setattr(instance, key_field.name, key)
    return instance
