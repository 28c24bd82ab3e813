"""Read wrapper that resolves deferred remote fields on access.

A loaded row whose type declares ``deferred_remote`` fields is handed back
wrapped in :class:`DeferredLoadProxy`. The proxy owns the freshly populated
row and keeps one state per flagged field:

``Stored(value)``
    the raw column value is the field's value; returned as is.
``RemoteRef(url)``
    the raw column value is an HTTP(S) URL spelled as bytes; the first read
    fetches it.
``Resolved(value)``
    content fetched from a ``RemoteRef``; cached for every later read.

A failed fetch leaves the field in ``RemoteRef`` so the next read tries
again. Every other attribute read, method call or assignment goes straight to
the wrapped row.

Only attribute reads made through the proxy resolve. Methods of the row type
run bound to the wrapped row, so a method that reads a deferred field sees the
raw stored value (the URL bytes), not fetched content.

The proxy is not an instance of the row type. ``isinstance`` checks,
``dataclasses.asdict`` and ``dataclasses.replace`` need ``unwrap(proxy)``.
Equality compares raw stored values in either operand order and never
fetches.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

import structlog

from lazyorm.errors import FetchError
from lazyorm.fetch.remote import Fetcher
from lazyorm.mapping.coder import looks_like_url
from lazyorm.observability.metrics import MetricsRegistry

LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Stored:
    value: Any


@dataclass(frozen=True, slots=True)
class RemoteRef:
    url: str


@dataclass(frozen=True, slots=True)
class Resolved:
    value: Any


FieldState = Union[Stored, RemoteRef, Resolved]


def classify(value: Any) -> FieldState:
    """Initial state for a flagged field holding ``value``."""
    if looks_like_url(value):
        return RemoteRef(bytes(value).decode("utf-8"))
    return Stored(value)


class DeferredLoadProxy:
    """Stand-in for a loaded row with lazily resolved remote fields."""

    __slots__ = ("_proxy_target", "_proxy_states", "_proxy_fetcher", "_proxy_metrics")

    def __init__(
        self,
        target: Any,
        deferred: Iterable[str],
        fetcher: Fetcher,
        *,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        states: Dict[str, FieldState] = {name: classify(getattr(target, name)) for name in deferred}
        object.__setattr__(self, "_proxy_target", target)
        object.__setattr__(self, "_proxy_states", states)
        object.__setattr__(self, "_proxy_fetcher", fetcher)
        object.__setattr__(self, "_proxy_metrics", metrics or MetricsRegistry())

    @property
    def __lazyorm_row_type__(self) -> type:
        return type(self._proxy_target)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_proxy_"):
            raise AttributeError(name)
        if name in self._proxy_states:
            return self._resolve(name)
        return getattr(self._proxy_target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._proxy_target, name, value)
        if name in self._proxy_states:
            self._proxy_states[name] = classify(value)

    def __delattr__(self, name: str) -> None:
        delattr(self._proxy_target, name)

    def __dir__(self):
        return dir(self._proxy_target)

    def __eq__(self, other: Any) -> bool:
        other = unwrap(other)
        if type(other) is not type(self._proxy_target):
            return NotImplemented
        return self._proxy_target == other

    def __hash__(self) -> int:
        return hash(self._proxy_target)

    def __repr__(self) -> str:
        pending = sorted(name for name, state in self._proxy_states.items() if isinstance(state, RemoteRef))
        return f"<DeferredLoadProxy {self._proxy_target!r} pending={pending}>"

    def _resolve(self, name: str) -> Any:
        state = self._proxy_states[name]
        if not isinstance(state, RemoteRef):
            return state.value
        self._proxy_metrics.incr("remote_fetches")
        try:
            content = self._proxy_fetcher.fetch(state.url)
        except FetchError:
            self._proxy_metrics.incr("fetch_failures")
            raise
        self._proxy_states[name] = Resolved(content)
        LOGGER.debug("deferred_field_resolved", field=name, url=state.url, bytes=len(content))
        return content


def is_proxy(value: Any) -> bool:
    return type(value) is DeferredLoadProxy


def unwrap(value: Any) -> Any:
    """Return the row behind a proxy (raw stored values), or ``value`` itself.

    Use it before ``isinstance`` checks or ``dataclasses`` helpers, which look
    at the real type of their argument.
    """
    if is_proxy(value):
        return object.__getattribute__(value, "_proxy_target")
    return value


def field_state(proxy: DeferredLoadProxy, name: str) -> FieldState:
    """Current resolution state of a deferred field."""
    states = object.__getattribute__(proxy, "_proxy_states")
    if name not in states:
        raise KeyError(f"{name!r} is not a deferred field")
    return states[name]
