"""
A REST API facade for store data with regex routing, capability masks,
hook-based extension points and content negotiation.

Handlers are registered against path patterns together with the methods and
body handling they support; the server authenticates each request through
hooks, dispatches it to the first matching handler and renders the result
as JSON, JSONP or XML.
"""

from http import HTTPStatus

from .application import ApiServer
from .config import SiteConfig
from .content_renderers import (
    CommonJSONRenderer,
    ContentRenderer,
    JSONRenderer,
    XMLRenderer,
)
from .dependencies import REQUIRED, Param
from .drivers import AwsApiGatewayDriver, Driver, WSGIDriver
from .error_models import ErrorResponse
from .exceptions import ApiError, ErrorKind, RestFacadeError, RouteConfigurationError
from .hooks import Hooks
from .models import (
    ACCEPT_DATA,
    ACCEPT_RAW_DATA,
    ALLMETHODS,
    CREATABLE,
    DELETABLE,
    EDITABLE,
    HIDDEN_ENDPOINT,
    READABLE,
    Identity,
    MethodFlag,
    Request,
    Response,
)
from .pagination import PaginationCursor
from .router import HandlerBinding, RouteTable

__version__ = "0.1.0"
__author__ = "REST Facade Contributors"
__license__ = "MIT"

__all__ = [
    "ApiServer",
    "SiteConfig",
    "Hooks",
    "Request",
    "Response",
    "Identity",
    "HTTPStatus",
    "MethodFlag",
    "READABLE",
    "CREATABLE",
    "EDITABLE",
    "DELETABLE",
    "ALLMETHODS",
    "ACCEPT_DATA",
    "ACCEPT_RAW_DATA",
    "HIDDEN_ENDPOINT",
    "HandlerBinding",
    "RouteTable",
    "Param",
    "REQUIRED",
    "ContentRenderer",
    "JSONRenderer",
    "CommonJSONRenderer",
    "XMLRenderer",
    "ApiError",
    "ErrorKind",
    "ErrorResponse",
    "RestFacadeError",
    "RouteConfigurationError",
    "PaginationCursor",
    "Driver",
    "WSGIDriver",
    "AwsApiGatewayDriver",
]
