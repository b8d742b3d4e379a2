"""
Main server class of the REST facade.
"""

import logging
from contextvars import ContextVar, Token
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .config import SiteConfig
from .content_renderers import ContentRenderer
from .datetimes import format_datetime, parse_datetime
from .dependencies import Param
from .dispatcher import Dispatcher
from .exceptions import ApiError, ErrorKind
from .hooks import Hooks
from .models import METHOD_MAP, READABLE, Identity, Request, Response
from .pagination import PaginationCursor, build_pagination_headers, format_link_header
from .router import HandlerBinding, RouteTable
from .state_machine import RequestStateMachine

# Set up logger for this module
logger = logging.getLogger(__name__)

# State of the request being served in the current thread or task
_current_user: ContextVar[Optional[Identity]] = ContextVar("restfacade_current_user", default=None)
_current_request: ContextVar[Optional[Request]] = ContextVar("restfacade_request", default=None)
_current_response: ContextVar[Optional[Response]] = ContextVar("restfacade_response", default=None)


class ApiServer:
    """Serves API requests for one site.

    Routes map a pattern to one or more handler bindings; handlers receive
    the request values they declare, by name::

        server = ApiServer(SiteConfig(name="My Store"))

        @server.route(r"/orders/(?P<id>\\d+)")
        def get_order(id, fields=None):
            return {"order": {"id": int(id)}}

        response = server.execute(Request("GET", "/orders/42"))

    The request and response currently being served are available as
    :attr:`request` and :attr:`response`, so handlers holding the server can
    add headers (e.g. :meth:`add_pagination_headers`).
    """

    def __init__(self, config: Optional[SiteConfig] = None, hooks: Optional[Hooks] = None):
        self.config = config or SiteConfig()
        self.hooks = hooks or Hooks()
        self._endpoints: Dict[str, List[HandlerBinding]] = {}

    # Request-scoped state, isolated per thread and per task
    @property
    def current_user(self) -> Optional[Identity]:
        return _current_user.get()

    @current_user.setter
    def current_user(self, user: Optional[Identity]) -> None:
        _current_user.set(user)

    @property
    def request(self) -> Optional[Request]:
        return _current_request.get()

    @property
    def response(self) -> Optional[Response]:
        return _current_response.get()

    def bind_request(self, request: Request, response: Response) -> Tuple[Token, Token, Token]:
        """Make a request and its response current. Returns tokens for :meth:`unbind_request`."""
        return (
            _current_user.set(None),
            _current_request.set(request),
            _current_response.set(response),
        )

    def unbind_request(self, tokens: Tuple[Token, Token, Token]) -> None:
        """Restore the request state that was current before :meth:`bind_request`."""
        user_token, request_token, response_token = tokens
        _current_response.reset(response_token)
        _current_request.reset(request_token)
        _current_user.reset(user_token)

    @property
    def version_marker(self) -> str:
        """Path marker of the current major API version, e.g. ``/v3``."""
        return f"/{self.config.latest_api_version}"

    # Route registration
    def route(self, pattern: str, mask: int = READABLE, params: Optional[Sequence[Param]] = None):
        """Decorator to register a handler for a route pattern.

        Registering several handlers on one pattern lets one path serve
        different handlers per method; they are tried in registration order.

        Args:
            pattern: Regular expression with named captures, e.g. ``/orders/(?P<id>\\d+)``
            mask: Capability mask (methods and behavior flags)
            params: Explicit parameter manifest; derived from the signature when omitted
        """

        def decorator(func: Callable):
            self.add_route(pattern, func, mask, params)
            return func

        return decorator

    def add_route(self, pattern: str, callback: Any, mask: int = READABLE,
                  params: Optional[Sequence[Param]] = None) -> None:
        """Register a handler for a route pattern."""
        binding = HandlerBinding(callback, int(mask), tuple(params) if params is not None else None)
        self._endpoints.setdefault(pattern, []).append(binding.with_manifest())

    def get_routes(self) -> RouteTable:
        """Build the route table.

        The index route comes first, then registered routes, then whatever
        the ``endpoints`` hook adds or replaces.
        """
        endpoints: Dict[str, Any] = {
            "/": (self.get_index, READABLE),
        }
        endpoints.update({pattern: list(bindings) for pattern, bindings in self._endpoints.items()})
        endpoints = self.hooks.apply_filters("endpoints", endpoints, self)
        return RouteTable.from_endpoints(endpoints)

    # Request pipeline
    def check_authentication(self, request: Request) -> Union[Identity, ApiError]:
        """Authenticate the request through the ``authenticate`` hook.

        Returns:
            The identity the request runs as, or an ApiError
        """
        user = self.hooks.apply_filters("authenticate", None, request)

        if isinstance(user, Identity):
            self.current_user = user
        elif not isinstance(user, ApiError):
            logger.warning(f"No authentication result for {request.method} {request.path}")
            user = ApiError.from_kind(ErrorKind.AUTHENTICATION_ERROR)
        else:
            logger.warning(f"Authentication failed for {request.method} {request.path}: {user.code}")

        return user

    def dispatch(self, request: Request, codec: ContentRenderer) -> Any:
        """Match the request to a handler and call it."""
        return Dispatcher(self.get_routes(), codec, self.hooks).dispatch(request)

    def serve_request(self, request: Request) -> Response:
        """Serve a request and return the finished response."""
        machine = RequestStateMachine(self)
        try:
            return machine.process_request(request)
        except Exception as e:
            logger.error(f"Unhandled exception processing {request.method} {request.path}: {e}")
            return machine.error_response(ApiError.from_kind(ErrorKind.INTERNAL_ERROR))

    execute = serve_request

    # Self description
    def get_index(self) -> Dict[str, Any]:
        """Describe the site and its available routes."""
        config = self.config
        available: Dict[str, Any] = {"store": {
            "name": config.name,
            "description": config.description,
            "URL": config.url,
            "wc_version": config.version,
            "latest_api_version": config.latest_api_version,
            "routes": {},
            "meta": {
                "timezone": config.timezone,
                "currency": config.currency,
                "currency_format": config.currency_format,
                "tax_included": config.tax_included,
                "weight_unit": config.weight_unit,
                "dimension_unit": config.dimension_unit,
                "ssl_enabled": config.ssl_enabled,
                "permalinks_enabled": config.permalinks_enabled,
                "links": {
                    "help": config.help_url,
                },
            },
        }}

        for entry in self.get_routes():
            # Skip the whole route if any of its handlers is hidden
            if any(binding.hidden for binding in entry.handlers):
                continue

            route = entry.display_pattern
            data: Dict[str, Any] = {}
            for name, bitmask in METHOD_MAP.items():
                for binding in entry.handlers:
                    if binding.mask & bitmask:
                        data.setdefault("supports", []).append(name)

                    if binding.accepts_data:
                        data["accepts_data"] = True

                    # For non-variable routes, generate links
                    if not entry.has_variables:
                        data["meta"] = {"self": route}

            available["store"]["routes"][route] = self.hooks.apply_filters("endpoints_description", data)

        return self.hooks.apply_filters("index", available)

    # Response helpers for handlers
    def _active_response(self) -> Response:
        if self.response is None:
            raise RuntimeError("No request is being served")
        return self.response

    def send_status(self, code: int) -> None:
        """Set the HTTP status of the response being served."""
        self._active_response().status_code = int(code)

    def header(self, key: str, value: Any, replace: bool = True) -> None:
        """Send a header with the response being served."""
        self._active_response().set_header(key, value, replace)

    def link_header(self, rel: str, link: str, other: Optional[Dict[str, Any]] = None) -> None:
        """Send a Link header (RFC 5988) with the response being served."""
        self.header("Link", format_link_header(rel, link, other), replace=False)

    def add_pagination_headers(self, query: Any) -> None:
        """Send pagination headers for a query's result set.

        Args:
            query: A PaginationCursor, a mapping of its fields, or a query object
        """
        cursor = PaginationCursor.from_query(query)
        request_uri = self.request.request_uri if self.request and self.request.request_uri else "/"
        for key, value in build_pagination_headers(cursor, request_uri, self.config):
            self.header(key, value, replace=(key != "Link"))

        self.hooks.do_action("pagination_headers", self, query)

    # Datetime helpers for handlers
    def parse_datetime(self, datetime: Any) -> str:
        """Parse a wire datetime into a UTC storage datetime (epoch when invalid)."""
        return parse_datetime(datetime)

    def format_datetime(self, timestamp: Any, convert_to_utc: bool = False) -> str:
        """Format a timestamp or storage datetime as a wire datetime."""
        return format_datetime(timestamp, convert_to_utc, self.config.tzinfo)
