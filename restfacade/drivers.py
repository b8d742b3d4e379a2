"""
Drivers connect a host environment (a WSGI server, AWS Lambda) to an ApiServer.

A driver turns the host's event into a :class:`Request`, lets the server
serve it, and hands the :class:`Response` back in the host's format.
"""

import base64
import logging
from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode

from .models import Request, Response, extract_headers

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def parse_params(query_string: str) -> Dict[str, Any]:
    """Parse a query string or urlencoded form.

    Values are decoded once, as a web server hands them over; names given
    more than once (or with a ``[]`` suffix) become lists.
    """
    params: Dict[str, Any] = {}
    for key, values in parse_qs(query_string, keep_blank_values=True).items():
        if key.endswith("[]"):
            params[key[:-2]] = values
        else:
            params[key] = values[0] if len(values) == 1 else values
    return params


def _is_form(content_type: Optional[str]) -> bool:
    return (content_type or "").split(";")[0].strip().lower() == FORM_CONTENT_TYPE


def _status_line(status_code: int) -> str:
    status_code = int(status_code)
    try:
        return f"{status_code} {HTTPStatus(status_code).phrase}"
    except ValueError:
        return f"{status_code} Unknown"


class Driver(ABC):
    """Base class of host drivers.

    Args:
        server: The ApiServer requests are served by
    """

    def __init__(self, server):
        self.server = server

    @abstractmethod
    def convert_to_request(self, event: Any, context: Optional[Any] = None) -> Request:
        """Build the Request for a host event."""

    @abstractmethod
    def convert_from_response(self, response: Response, event: Any, context: Optional[Any] = None) -> Any:
        """Hand a finished Response back in the host's format."""

    def handle_event(self, event: Any, context: Optional[Any] = None) -> Any:
        """Serve one host event."""
        request = self.convert_to_request(event, context)
        response = self.server.execute(request)
        logger.debug(f"{type(self).__name__} served {request.method} {request.path}: {int(response.status_code)}")
        return self.convert_from_response(response, event, context)


class WSGIDriver(Driver):
    """Driver exposing the server as a WSGI application.

    Example::

        app = WSGIDriver(ApiServer(config))
        # e.g. wsgiref.simple_server.make_server("", 8000, app).serve_forever()
    """

    def __call__(self, environ: Dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        return self.handle_event(environ, start_response)

    def convert_to_request(self, event: Mapping[str, Any], context: Optional[Any] = None) -> Request:
        """Build the Request for a WSGI environ.

        Query and urlencoded form parameters are parsed; the body is read
        from ``wsgi.input`` up to ``CONTENT_LENGTH``.
        """
        path = event.get("PATH_INFO") or "/"
        query_string = event.get("QUERY_STRING", "")

        body = self._read_body(event)
        body_params: Dict[str, Any] = {}
        if _is_form(event.get("CONTENT_TYPE")) and body:
            body_params = parse_params(body.decode("latin-1"))

        request_uri = event.get("SCRIPT_NAME", "") + path
        if query_string:
            request_uri += f"?{query_string}"

        return Request(
            method=event.get("REQUEST_METHOD", "GET"),
            path=path,
            headers=extract_headers(event),
            query_params=parse_params(query_string),
            body_params=body_params,
            body=body,
            request_uri=request_uri,
        )

    @staticmethod
    def _read_body(environ: Mapping[str, Any]) -> bytes:
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        stream = environ.get("wsgi.input")
        if length <= 0 or stream is None:
            return b""
        return stream.read(length)

    def convert_from_response(self, response: Response, event: Any, context: Optional[Any] = None) -> List[bytes]:
        """Start the WSGI response and return the body iterable.

        Args:
            response: The finished response
            event: The WSGI environ
            context: The WSGI ``start_response`` callable
        """
        if context is None:
            raise ValueError("WSGI responses need a start_response callable")
        context(_status_line(response.status_code), response.header_items())
        return [response.body.encode("utf-8")] if response.body else []


class AwsApiGatewayDriver(Driver):
    """Driver for API Gateway Lambda proxy integration events.

    Example::

        driver = AwsApiGatewayDriver(server)

        def lambda_handler(event, context):
            return driver.handle_event(event, context)
    """

    @staticmethod
    def _event_headers(event: Mapping[str, Any]) -> Dict[str, str]:
        # Proxy events may carry null header values
        headers = {key: str(value) for key, value in (event.get("headers") or {}).items() if value is not None}
        for key, values in (event.get("multiValueHeaders") or {}).items():
            if values and key not in headers:
                headers[key] = ", ".join(str(v) for v in values)
        return headers

    @staticmethod
    def _event_query(event: Mapping[str, Any]) -> Dict[str, Any]:
        multi = event.get("multiValueQueryStringParameters")
        if multi:
            return {key: values[0] if len(values) == 1 else list(values) for key, values in multi.items() if values}
        single = event.get("queryStringParameters") or {}
        return {key: value for key, value in single.items() if value is not None}

    def convert_to_request(self, event: Mapping[str, Any], context: Optional[Any] = None) -> Request:
        """Build the Request for a proxy event; base64 bodies are decoded."""
        path = event.get("path") or "/"
        headers = self._event_headers(event)
        query_params = self._event_query(event)

        body: Union[str, bytes] = event.get("body") or ""
        if body and event.get("isBase64Encoded"):
            # Binary payloads stay bytes; Request.raw_body decodes them leniently
            body = base64.b64decode(body)

        content_type = next((value for key, value in headers.items() if key.lower() == "content-type"), None)
        body_params: Dict[str, Any] = {}
        if _is_form(content_type) and body:
            form = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
            body_params = parse_params(form)

        request_uri = path
        if query_params:
            request_uri += "?" + urlencode(query_params, doseq=True)

        return Request(
            method=event.get("httpMethod", "GET"),
            path=path,
            headers=headers,
            query_params=query_params,
            body_params=body_params,
            body=body,
            request_uri=request_uri,
        )

    def convert_from_response(self, response: Response, event: Any, context: Optional[Any] = None) -> Dict[str, Any]:
        """Build the proxy integration result.

        Repeated headers (e.g. ``Link``) are listed in ``multiValueHeaders``;
        ``headers`` holds the last value of each.
        """
        headers: Dict[str, str] = {}
        multi_value_headers: Dict[str, List[str]] = {}
        for key, value in response.header_items():
            headers[key] = value
            multi_value_headers.setdefault(key, []).append(value)

        return {
            "statusCode": int(response.status_code),
            "headers": headers,
            "multiValueHeaders": multi_value_headers,
            "body": response.body or "",
            "isBase64Encoded": False,
        }
