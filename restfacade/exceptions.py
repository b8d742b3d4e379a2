"""
Error values and exceptions for the REST facade.
"""

from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Iterator, List, Optional, Tuple


class ErrorKind(Enum):
    """Error kinds raised by the facade itself, each with a stable code and status."""

    UNSUPPORTED_METHOD = ("aftership_api_unsupported_method", HTTPStatus.BAD_REQUEST,
                          "Unsupported request method")
    MISSING_CALLBACK_PARAM = ("aftership_api_missing_callback_param", HTTPStatus.BAD_REQUEST,
                              "Missing parameter {name}")
    NO_ROUTE = ("aftership_api_no_route", HTTPStatus.NOT_FOUND,
                "No route was found matching the URL and request method")
    INVALID_HANDLER = ("aftership_api_invalid_handler", HTTPStatus.INTERNAL_SERVER_ERROR,
                       "The handler for the route is invalid")
    AUTHENTICATION_ERROR = ("aftership_api_authentication_error", HTTPStatus.INTERNAL_SERVER_ERROR,
                            "Invalid authentication method")
    API_DISABLED = ("aftership_api_disabled", HTTPStatus.NOT_FOUND,
                    "The API is disabled on this site")
    INVALID_JSON = ("aftership_api_invalid_json", HTTPStatus.BAD_REQUEST,
                    "The request body is not valid JSON")
    INVALID_XML = ("aftership_api_invalid_xml", HTTPStatus.BAD_REQUEST,
                   "The request body is not valid XML")
    JSONP_DISABLED = ("aftership_api_jsonp_disabled", HTTPStatus.BAD_REQUEST,
                      "JSONP support is disabled on this site")
    JSONP_CALLBACK_INVALID = ("aftership_api_jsonp_callback_invalid", HTTPStatus.BAD_REQUEST,
                              "The JSONP callback function is invalid")
    INTERNAL_ERROR = ("aftership_api_internal_error", HTTPStatus.INTERNAL_SERVER_ERROR,
                      "Internal server error")

    def __init__(self, code: str, status: HTTPStatus, default_message: str):
        self.code = code
        self.status = status
        self.default_message = default_message


class RestFacadeError(Exception):
    """Base exception for REST facade errors."""

    pass


class RouteConfigurationError(RestFacadeError):
    """Raised when a route or handler binding is registered in an unusable shape."""

    pass


class ApiError(RestFacadeError):
    """A structured API error.

    An ``ApiError`` is both a value and an exception: the dispatch pipeline
    returns it to short-circuit, and handlers may either return or raise it.
    One error can carry several code/message pairs; the data (including the
    HTTP ``status``) belongs to the first code added.

    Example::

        error = ApiError("my_plugin_invalid_id", "Invalid ID", status=400)
        error.add("my_plugin_invalid_id", "ID must be numeric")
    """

    def __init__(self, code: str, message: str, status: Optional[int] = None, **data: Any):
        self.errors: Dict[str, List[str]] = {}
        self.error_data: Dict[str, Dict[str, Any]] = {}
        self.add(code, message, status, **data)
        super().__init__(message)

    @classmethod
    def from_kind(cls, kind: ErrorKind, message: Optional[str] = None, **data: Any) -> "ApiError":
        """Create an error for one of the facade's own error kinds.

        Args:
            kind: The error kind
            message: Optional message replacing the kind's default message
            **data: Extra error data; also used to format the default message

        Returns:
            ApiError carrying the kind's code and status
        """
        if message is None:
            message = kind.default_message.format(**data)
        return cls(kind.code, message, status=int(kind.status), **data)

    def add(self, code: str, message: str, status: Optional[int] = None, **data: Any) -> None:
        """Add a code/message pair to this error."""
        self.errors.setdefault(code, []).append(message)
        if status is not None:
            data["status"] = status
        if data:
            self.error_data.setdefault(code, {}).update(data)

    @property
    def code(self) -> str:
        return next(iter(self.errors))

    @property
    def message(self) -> str:
        return self.errors[self.code][0]

    @property
    def data(self) -> Dict[str, Any]:
        return self.error_data.get(self.code, {})

    @property
    def status(self) -> Optional[int]:
        status = self.data.get("status")
        return status if isinstance(status, int) else None

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for code, messages in self.errors.items():
            for message in messages:
                yield code, message

    def to_list(self) -> List[Dict[str, str]]:
        """Flatten every code/message pair into the transport list shape."""
        return [{"code": code, "message": message} for code, message in self]

    def __repr__(self) -> str:
        return f"ApiError(code={self.code!r}, message={self.message!r}, status={self.status!r})"
