"""
Route table: path patterns mapped to ordered handler bindings.

Patterns are regular expressions with named captures, e.g.
``/orders/(?P<id>\\d+)``. They are matched anchored and case-insensitively
against the URL-decoded request path.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import unquote_plus

from .dependencies import Param, params_from_callable
from .exceptions import RouteConfigurationError
from .models import MethodFlag

_NAMED_CAPTURE_RE = re.compile(r"\(\?P(<\w+?>).*?\)")


@dataclass(frozen=True)
class HandlerBinding:
    """A handler callable with its capability mask and parameter manifest."""

    callback: Any
    mask: int = MethodFlag.GET
    params: Optional[Tuple[Param, ...]] = None

    def supports(self, method: int) -> bool:
        return bool(self.mask & method)

    @property
    def is_callable(self) -> bool:
        return callable(self.callback)

    @property
    def accepts_data(self) -> bool:
        return bool(self.mask & MethodFlag.ACCEPT_DATA)

    @property
    def accepts_raw_data(self) -> bool:
        return bool(self.mask & MethodFlag.ACCEPT_RAW_DATA)

    @property
    def hidden(self) -> bool:
        return bool(self.mask & MethodFlag.HIDDEN_ENDPOINT)

    def with_manifest(self) -> "HandlerBinding":
        """Return this binding with its parameter manifest resolved."""
        if self.params is not None or not self.is_callable:
            return self
        return HandlerBinding(self.callback, self.mask, params_from_callable(self.callback))


@dataclass(frozen=True)
class RouteEntry:
    """A path pattern and the handlers bound to it, in priority order."""

    pattern: str
    handlers: Tuple[HandlerBinding, ...]
    matcher: "re.Pattern[str]" = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            matcher = re.compile(f"^{self.pattern}$", re.IGNORECASE)
        except re.error as e:
            raise RouteConfigurationError(f"Invalid route pattern {self.pattern!r}: {e}") from e
        object.__setattr__(self, "matcher", matcher)

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Match a request path against this pattern.

        Returns:
            The named captures (unmatched optional groups left out), or None
        """
        match = self.matcher.match(unquote_plus(path))
        if match is None:
            return None
        return {name: value for name, value in match.groupdict().items() if value is not None}

    @property
    def display_pattern(self) -> str:
        """The pattern with named captures reduced to ``<name>``."""
        return _NAMED_CAPTURE_RE.sub(r"\1", self.pattern)

    @property
    def has_variables(self) -> bool:
        return "<" in self.display_pattern


def _is_binding_like(item: Any) -> bool:
    return isinstance(item, (HandlerBinding, tuple, list))


def to_binding(item: Any) -> HandlerBinding:
    """Convert one registered handler to a binding.

    Accepts a HandlerBinding, a bare callable (GET only), or a
    ``(callback, mask)`` / ``(callback, mask, params)`` sequence.
    """
    if isinstance(item, HandlerBinding):
        binding = item
    elif isinstance(item, (tuple, list)):
        if not 1 <= len(item) <= 3:
            raise RouteConfigurationError(f"Invalid handler registration: {item!r}")
        callback = item[0]
        mask = item[1] if len(item) > 1 and item[1] is not None else MethodFlag.GET
        params = tuple(item[2]) if len(item) > 2 and item[2] is not None else None
        if not isinstance(mask, int):
            raise RouteConfigurationError(f"Invalid capability mask for {callback!r}: {mask!r}")
        binding = HandlerBinding(callback, int(mask), params)
    else:
        binding = HandlerBinding(item)
    return binding.with_manifest()


def normalize_handlers(handlers: Any) -> Tuple[HandlerBinding, ...]:
    """Normalize the value registered for one pattern to a tuple of bindings.

    A single ``(callback, mask)`` pair becomes a one-element tuple; a list
    of pairs passes through in order.
    """
    if isinstance(handlers, (tuple, list)) and handlers and all(_is_binding_like(h) for h in handlers):
        return tuple(to_binding(h) for h in handlers)
    return (to_binding(handlers),)


class RouteTable:
    """An immutable, ordered collection of route entries."""

    def __init__(self, entries: Sequence[RouteEntry] = ()):
        self._entries: Tuple[RouteEntry, ...] = tuple(entries)

    @classmethod
    def from_endpoints(cls, endpoints: Mapping[str, Any]) -> "RouteTable":
        """Build a table from a ``pattern -> handlers`` mapping, keeping its order."""
        return cls([RouteEntry(pattern, normalize_handlers(handlers)) for pattern, handlers in endpoints.items()])

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> RouteEntry:
        return self._entries[index]

    def patterns(self) -> List[str]:
        return [entry.pattern for entry in self._entries]

    def find(self, method: int, path: str) -> Optional[Tuple[RouteEntry, HandlerBinding, Dict[str, str]]]:
        """Find the first binding answering ``method`` whose pattern matches ``path``.

        Entries are tried in order, and within an entry its bindings in order.
        """
        for entry in self._entries:
            for binding in entry.handlers:
                if not binding.supports(method):
                    continue
                captures = entry.match(path)
                if captures is None:
                    continue
                return entry, binding, captures
        return None
