"""
Extension points of the request pipeline.

Filters receive the running value as their first argument and return the
(possibly replaced) value; the next filter receives what the previous one
returned. Actions are called for their side effects only. Within one hook,
callbacks run by ascending priority, then in registration order.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

logger = logging.getLogger(__name__)

FILTER_HOOKS = frozenset({
    "endpoints",              # (endpoints, server) -> endpoints
    "default_codec",          # (codec, request) -> codec
    "authenticate",           # (identity_or_none, request) -> Identity | ApiError | None
    "api_enabled",            # (enabled, request) -> bool
    "dispatch_args",          # (args, callback) -> args | ApiError
    "serve_request",          # (served, result, server, request) -> bool
    "endpoints_description",  # (description) -> description
    "index",                  # (index) -> index
    "jsonp_enabled",          # (enabled, request) -> bool
})

ACTION_HOOKS = frozenset({
    "before_serve",           # (server, request)
    "pagination_headers",     # (server, query)
})

DEFAULT_PRIORITY = 10


class Hooks:
    """Ordered interceptor lists, one per named extension point."""

    def __init__(self):
        self._callbacks: Dict[str, List[Tuple[int, int, Callable]]] = {}
        self._counter = 0

    def _check_name(self, name: str, known: frozenset) -> None:
        if name not in known:
            raise ValueError(f"Unknown hook: {name}")

    def _add(self, name: str, func: Callable, priority: int) -> None:
        self._counter += 1
        callbacks = self._callbacks.setdefault(name, [])
        callbacks.append((priority, self._counter, func))
        callbacks.sort(key=lambda entry: (entry[0], entry[1]))

    def add_filter(self, name: str, func: Callable, priority: int = DEFAULT_PRIORITY) -> None:
        """Register a filter callback for a hook."""
        self._check_name(name, FILTER_HOOKS)
        self._add(name, func, priority)

    def add_action(self, name: str, func: Callable, priority: int = DEFAULT_PRIORITY) -> None:
        """Register an action callback for a hook."""
        self._check_name(name, ACTION_HOOKS)
        self._add(name, func, priority)

    def filter(self, name: str, priority: int = DEFAULT_PRIORITY):
        """Decorator to register a filter callback.

        Example::

            @hooks.filter("authenticate")
            def api_key_auth(user, request):
                if request.get_header("X-Api-Key") == "secret":
                    return Identity(1, "api")
                return user
        """

        def decorator(func: Callable):
            self.add_filter(name, func, priority)
            return func

        return decorator

    def action(self, name: str, priority: int = DEFAULT_PRIORITY):
        """Decorator to register an action callback."""

        def decorator(func: Callable):
            self.add_action(name, func, priority)
            return func

        return decorator

    def remove(self, name: str, func: Callable) -> bool:
        """Remove a callback from a hook. Returns whether it was registered."""
        callbacks = self._callbacks.get(name, [])
        for entry in callbacks:
            if entry[2] == func:
                callbacks.remove(entry)
                return True
        return False

    def has(self, name: str) -> bool:
        return bool(self._callbacks.get(name))

    def apply_filters(self, name: str, value: Any, *args: Any, halt_on: Optional[Type] = None) -> Any:
        """Run every filter registered for a hook over a value.

        Args:
            name: Hook name
            value: Initial value
            *args: Extra arguments passed to every filter
            halt_on: Stop the chain as soon as a filter returns an instance of this type

        Returns:
            The value returned by the last filter that ran, or the initial value
        """
        self._check_name(name, FILTER_HOOKS)
        for _, _, func in list(self._callbacks.get(name, [])):
            value = func(value, *args)
            if halt_on is not None and isinstance(value, halt_on):
                logger.debug(f"Filter {getattr(func, '__name__', func)!s} halted hook {name}")
                break
        return value

    def do_action(self, name: str, *args: Any) -> None:
        """Call every action registered for a hook."""
        self._check_name(name, ACTION_HOOKS)
        for _, _, func in list(self._callbacks.get(name, [])):
            func(*args)
