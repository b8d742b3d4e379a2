"""
Core data models for the REST facade.
"""

import enum
from dataclasses import dataclass, field
from functools import cached_property
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union


class MethodFlag(enum.IntFlag):
    """Capability bits of a handler binding.

    The low five bits describe which HTTP methods a handler answers, the
    remaining bits describe how the dispatcher treats the request body and
    whether the route is listed by the index endpoint.
    """

    GET = 1
    POST = 2
    PUT = 4
    PATCH = 8
    DELETE = 16

    ACCEPT_RAW_DATA = 64
    ACCEPT_DATA = 128
    HIDDEN_ENDPOINT = 256


READABLE = MethodFlag.GET
CREATABLE = MethodFlag.POST
EDITABLE = MethodFlag.POST | MethodFlag.PUT | MethodFlag.PATCH
DELETABLE = MethodFlag.DELETE
ALLMETHODS = READABLE | CREATABLE | EDITABLE | DELETABLE

ACCEPT_RAW_DATA = MethodFlag.ACCEPT_RAW_DATA
ACCEPT_DATA = MethodFlag.ACCEPT_DATA
HIDDEN_ENDPOINT = MethodFlag.HIDDEN_ENDPOINT

# Verb names as they appear on the wire, in the order the index lists them.
METHOD_MAP: Dict[str, MethodFlag] = {
    "HEAD": MethodFlag.GET,
    "GET": MethodFlag.GET,
    "POST": MethodFlag.POST,
    "PUT": MethodFlag.PUT,
    "PATCH": MethodFlag.PATCH,
    "DELETE": MethodFlag.DELETE,
}

# CONTENT_* headers are not prefixed with HTTP_ in a CGI/WSGI environ
_UNPREFIXED_HEADERS = frozenset({"CONTENT_LENGTH", "CONTENT_MD5", "CONTENT_TYPE"})


def normalize_header_name(name: str) -> str:
    """Normalize a header name to the environ style used internally.

    ``Content-Type`` becomes ``CONTENT_TYPE`` and ``HTTP_ACCEPT`` becomes ``ACCEPT``.
    """
    key = name.strip().upper().replace("-", "_")
    if key.startswith("HTTP_"):
        key = key[5:]
    return key


def extract_headers(environ: Mapping[str, Any]) -> Dict[str, str]:
    """Extract request headers from a CGI/WSGI style environ mapping.

    Args:
        environ: Mapping similar to a WSGI environ

    Returns:
        Headers keyed by their upper-cased name with the ``HTTP_`` prefix removed
    """
    headers = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:]] = value
        elif key in _UNPREFIXED_HEADERS:
            headers[key] = value
    return headers


@dataclass(frozen=True)
class Identity:
    """An authenticated principal returned by an authentication hook."""

    id: Union[int, str]
    name: str = ""


@dataclass(frozen=True)
class Request:
    """Represents an inbound API request.

    ``body`` may be the raw entity itself or a zero-argument callable that
    reads it; either way :attr:`raw_body` reads it at most once.
    """

    method: str
    path: str = "/"
    headers: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, Any] = field(default_factory=dict)
    body_params: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, Any] = field(default_factory=dict)
    body: Union[str, bytes, Callable[[], Union[str, bytes]], None] = None
    request_uri: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "path", self.path or "/")
        object.__setattr__(
            self, "headers", {normalize_header_name(k): v for k, v in self.headers.items()}
        )

        method = self.method.upper()
        # Compatibility for clients that can't send PUT/PATCH/DELETE
        override = self.query_params.get("_method")
        if isinstance(override, str) and override:
            method = override.upper()
        object.__setattr__(self, "method", method)

        if self.request_uri is None:
            object.__setattr__(self, "request_uri", self.path)

    @cached_property
    def raw_body(self) -> str:
        """The request entity, read once and decoded as UTF-8."""
        body = self.body() if callable(self.body) else self.body
        if body is None:
            return ""
        if isinstance(body, bytes):
            return body.decode("utf-8", errors="replace")
        return body

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header by any spelling of its name."""
        return self.headers.get(normalize_header_name(name), default)

    def get_accept_header(self) -> Optional[str]:
        """Get the Accept header, if present."""
        return self.headers.get("ACCEPT")

    def get_content_type(self) -> Optional[str]:
        """Get the Content-Type header."""
        return self.headers.get("CONTENT_TYPE")


@dataclass
class Response:
    """Represents the HTTP response being assembled for a request."""

    status_code: int = HTTPStatus.OK
    body: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None
    # Headers that may repeat (e.g. Link), kept in emission order
    extra_headers: List[Tuple[str, str]] = field(default_factory=list)

    def __post_init__(self):
        if self.content_type:
            self.headers["Content-Type"] = self.content_type

    def set_header(self, key: str, value: Any, replace: bool = True) -> None:
        """Set a response header.

        Args:
            key: Header name
            value: Header value, converted to a string
            replace: Replace an existing header of the same name instead of adding another line
        """
        value = str(value)
        if replace:
            self.extra_headers = [(k, v) for k, v in self.extra_headers if k.lower() != key.lower()]
            self.headers[key] = value
        else:
            self.extra_headers.append((key, value))
        if key.lower() == "content-type":
            self.content_type = value

    def get_header(self, key: str) -> Optional[str]:
        for name, value in self.header_items():
            if name.lower() == key.lower():
                return value
        return None

    def get_all(self, key: str) -> List[str]:
        """Get every value sent for a header, in order."""
        return [value for name, value in self.header_items() if name.lower() == key.lower()]

    def header_items(self) -> List[Tuple[str, str]]:
        """All header lines of the response, including Content-Length."""
        items = list(self.headers.items()) + list(self.extra_headers)
        if self.status_code != HTTPStatus.NO_CONTENT and "Content-Length" not in self.headers:
            body_bytes = self.body.encode("utf-8") if self.body else b""
            items.append(("Content-Length", str(len(body_bytes))))
        return items
