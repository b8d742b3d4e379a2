"""
Content negotiation: choosing the body codec for a request.
"""

import logging
from typing import Optional

from .content_renderers import CommonJSONRenderer, ContentRenderer, JSONRenderer, XMLRenderer
from .hooks import Hooks
from .models import Request

logger = logging.getLogger(__name__)

CURRENT_VERSION_MARKER = "/v3"

JSON_ACCEPT_TYPES = ("application/json",)
XML_ACCEPT_TYPES = ("application/xml", "text/xml")


def is_json_request(request: Request) -> bool:
    """Whether the path suffix or the Accept header asks for JSON.

    Only an Accept header of exactly ``application/json`` counts.
    """
    if ".json" in request.path.lower():
        return True
    return request.get_accept_header() in JSON_ACCEPT_TYPES


def is_xml_request(request: Request) -> bool:
    """Whether the path suffix or the Accept header asks for XML."""
    if ".xml" in request.path.lower():
        return True
    return request.get_accept_header() in XML_ACCEPT_TYPES


def is_legacy(request: Request, marker: str = CURRENT_VERSION_MARKER) -> bool:
    """Whether the request targets a legacy API generation.

    Requests whose path carries the current major version marker are served
    by the current handler family.
    """
    return marker.lower() not in request.path.lower()


def negotiate_codec(request: Request, hooks: Optional[Hooks] = None,
                    version_marker: str = CURRENT_VERSION_MARKER) -> ContentRenderer:
    """Choose the body codec for a request.

    JSON wins over XML when both are asked for; with neither, the
    ``default_codec`` hook chooses (JSON unless overridden). Requests for
    the current API generation always use the current family's codec.
    """
    hooks = hooks or Hooks()
    jsonp_enabled = bool(hooks.apply_filters("jsonp_enabled", True, request))

    codec: ContentRenderer
    if is_json_request(request):
        codec = JSONRenderer(jsonp_enabled=jsonp_enabled)
    elif is_xml_request(request):
        codec = XMLRenderer()
    else:
        codec = hooks.apply_filters("default_codec", JSONRenderer(jsonp_enabled=jsonp_enabled), request)

    if not is_legacy(request, version_marker):
        codec = CommonJSONRenderer()

    logger.debug(f"Negotiated {codec!r} for {request.method} {request.path}")
    return codec
