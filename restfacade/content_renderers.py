"""
Body codecs: request body parsers and response renderers per media type.
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from http import HTTPStatus
from typing import Any, Dict, Optional

from .exceptions import ApiError, ErrorKind
from .models import Request

logger = logging.getLogger(__name__)

_JSONP_CALLBACK_RE = re.compile(r"^[a-zA-Z0-9_.]+$")
_XML_NAME_RE = re.compile(r"^[A-Za-z_][\w.-]*$")


def _error_list(data: Any) -> Optional[list]:
    """Return the error list if ``data`` has the transport error shape."""
    if isinstance(data, dict) and set(data) == {"errors"} and isinstance(data["errors"], list):
        return data["errors"]
    return None


class ContentRenderer:
    """Base class for body codecs."""

    def __init__(self, media_type: str):
        self.media_type = media_type

    def get_content_type(self, request: Optional[Request] = None) -> str:
        """The Content-Type header value for responses."""
        return f"{self.media_type}; charset=utf-8"

    def parse_body(self, body: str) -> Any:
        """Parse a request body. Returns the parsed value or an ApiError."""
        raise NotImplementedError

    def generate_response(self, data: Any, request: Optional[Request] = None,
                          status_code: int = HTTPStatus.OK) -> str:
        """Render a response value (success or error list) as this media type."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.media_type!r})"


class JSONRenderer(ContentRenderer):
    """JSON codec, with JSONP support through the ``_jsonp`` query parameter."""

    def __init__(self, jsonp_enabled: bool = True):
        super().__init__("application/json")
        self.jsonp_enabled = jsonp_enabled

    @staticmethod
    def _jsonp_callback(request: Optional[Request]) -> Optional[str]:
        if request is None:
            return None
        callback = request.query_params.get("_jsonp")
        return callback if isinstance(callback, str) else None

    def get_content_type(self, request: Optional[Request] = None) -> str:
        if self._jsonp_callback(request) is not None:
            return "application/javascript; charset=utf-8"
        return super().get_content_type(request)

    def parse_body(self, body: str) -> Any:
        if not body or not body.strip():
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON request body: {e}")
            return ApiError.from_kind(ErrorKind.INVALID_JSON)

    def encode(self, data: Any) -> str:
        """Serialize a value to JSON, stringifying what JSON can't represent."""
        return json.dumps(data, default=str)

    def generate_response(self, data: Any, request: Optional[Request] = None,
                          status_code: int = HTTPStatus.OK) -> str:
        """Render data as JSON, or as a JSONP call when a callback was requested.

        Raises:
            ApiError: If JSONP is disabled or the callback name is not a valid function name
        """
        callback = self._jsonp_callback(request)
        if callback is None:
            return self.encode(data)

        if not self.jsonp_enabled:
            raise ApiError.from_kind(ErrorKind.JSONP_DISABLED)
        if not _JSONP_CALLBACK_RE.match(callback):
            raise ApiError.from_kind(ErrorKind.JSONP_CALLBACK_INVALID)
        return f"/**/{callback}({self.encode(data)})"


class CommonJSONRenderer(JSONRenderer):
    """JSON codec of the current API generation.

    Responses are wrapped in a ``meta``/``data`` envelope::

        {"meta": {"code": 200}, "data": {...}}
        {"meta": {"code": 404, "type": "aftership_api_no_route", "message": "..."}, "data": {}}
    """

    def __init__(self):
        super().__init__(jsonp_enabled=False)

    def get_content_type(self, request: Optional[Request] = None) -> str:
        return f"{self.media_type}; charset=utf-8"

    def generate_response(self, data: Any, request: Optional[Request] = None,
                          status_code: int = HTTPStatus.OK) -> str:
        errors = _error_list(data)
        if errors is not None:
            first = errors[0] if errors else {}
            meta: Dict[str, Any] = {
                "code": int(status_code),
                "type": first.get("code", ""),
                "message": first.get("message", ""),
            }
            if len(errors) > 1:
                meta["errors"] = errors
            return self.encode({"meta": meta, "data": {}})
        return self.encode({"meta": {"code": int(status_code)}, "data": data})


class XMLRenderer(ContentRenderer):
    """XML codec.

    A dict with a single key is rendered with that key as the document
    element, anything else inside a ``<response>`` element. List items are
    named after the singular of their parent (``errors`` -> ``error``).
    """

    def __init__(self, media_type: str = "application/xml"):
        super().__init__(media_type)

    def parse_body(self, body: str) -> Any:
        if not body or not body.strip():
            return None
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            logger.warning(f"Invalid XML request body: {e}")
            return ApiError.from_kind(ErrorKind.INVALID_XML)
        return {root.tag: self._element_to_value(root)}

    def _element_to_value(self, element: ET.Element) -> Any:
        children = list(element)
        if not children:
            return element.text.strip() if element.text else ""
        value: Dict[str, Any] = {}
        for child in children:
            key = child.get("key", child.tag) if child.tag == "item" else child.tag
            child_value = self._element_to_value(child)
            if key in value:
                if not isinstance(value[key], list):
                    value[key] = [value[key]]
                value[key].append(child_value)
            else:
                value[key] = child_value
        return value

    def generate_response(self, data: Any, request: Optional[Request] = None,
                          status_code: int = HTTPStatus.OK) -> str:
        if isinstance(data, dict) and len(data) == 1:
            tag, value = next(iter(data.items()))
            root = self._make_element(str(tag))
            self._fill(root, value, str(tag))
        else:
            root = ET.Element("response")
            self._fill(root, data, "response")
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")

    @staticmethod
    def _make_element(tag: str, parent: Optional[ET.Element] = None) -> ET.Element:
        # Keys such as route patterns aren't valid element names
        if _XML_NAME_RE.match(tag) and not tag.lower().startswith("xml"):
            element = ET.Element(tag)
        else:
            element = ET.Element("item", key=tag)
        if parent is not None:
            parent.append(element)
        return element

    def _fill(self, element: ET.Element, value: Any, name: str) -> None:
        if isinstance(value, dict):
            for key, item in value.items():
                self._fill(self._make_element(str(key), element), item, str(key))
        elif isinstance(value, (list, tuple)):
            item_tag = name[:-1] if len(name) > 1 and name.endswith("s") else "item"
            for item in value:
                self._fill(self._make_element(item_tag, element), item, item_tag)
        elif isinstance(value, bool):
            element.text = "true" if value else "false"
        elif value is None:
            element.text = ""
        else:
            element.text = str(value)
