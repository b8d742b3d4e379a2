"""
Request dispatch: method classification, route matching and handler invocation.
"""

import logging
from typing import Any, Dict, Optional, Union

from .content_renderers import ContentRenderer
from .dependencies import bind
from .exceptions import ApiError, ErrorKind
from .hooks import Hooks
from .models import MethodFlag, Request
from .router import RouteTable

logger = logging.getLogger(__name__)

# Only read requests are dispatched by this API generation; the other verbs
# still have flags so handlers can declare them.
DISPATCHABLE_METHODS: Dict[str, MethodFlag] = {
    "HEAD": MethodFlag.GET,
    "GET": MethodFlag.GET,
}


def classify_method(verb: str) -> Union[MethodFlag, ApiError]:
    """Map an HTTP verb to the method flag handlers are matched against.

    Returns:
        The method flag, or an unsupported-method error for verbs that aren't dispatched
    """
    method = DISPATCHABLE_METHODS.get(verb.upper())
    if method is None:
        logger.warning(f"Unsupported request method: {verb}")
        return ApiError.from_kind(ErrorKind.UNSUPPORTED_METHOD)
    return method


class Dispatcher:
    """Matches a request to a handler binding and calls it.

    Args:
        routes: The route table for this request
        codec: The negotiated codec, used to parse request bodies
        hooks: Hooks providing the ``dispatch_args`` extension point
    """

    def __init__(self, routes: RouteTable, codec: ContentRenderer, hooks: Optional[Hooks] = None):
        self.routes = routes
        self.codec = codec
        self.hooks = hooks or Hooks()

    def dispatch(self, request: Request) -> Any:
        """Dispatch a request.

        Returns:
            The handler's return value verbatim, or an ApiError if dispatch failed
        """
        method = classify_method(request.method)
        if isinstance(method, ApiError):
            return method

        found = self.routes.find(method, request.path)
        if found is None:
            logger.debug(f"No route for {request.method} {request.path}")
            return ApiError.from_kind(ErrorKind.NO_ROUTE)

        entry, binding, captures = found
        logger.debug(f"Matched {request.method} {request.path} to route {entry.pattern}")

        if not binding.is_callable:
            logger.error(f"Handler for route {entry.pattern} is not callable: {binding.callback!r}")
            return ApiError.from_kind(ErrorKind.INVALID_HANDLER)

        args: Dict[str, Any] = dict(captures)
        args.update(request.query_params)
        if method & MethodFlag.POST:
            args.update(request.body_params)

        if binding.accepts_data:
            data = self.codec.parse_body(request.raw_body)
            if isinstance(data, ApiError):
                return data
            args["data"] = data
        elif binding.accepts_raw_data:
            args["data"] = request.raw_body

        args["_method"] = method
        args["_route"] = entry.pattern
        args["_path"] = request.path
        args["_headers"] = request.headers
        args["_files"] = request.files

        # Interceptors may rewrite the arguments or halt the request
        args = self.hooks.apply_filters("dispatch_args", args, binding.callback, halt_on=ApiError)
        if isinstance(args, ApiError):
            return args

        params = bind(binding.params or (), args)
        if isinstance(params, ApiError):
            return params

        return binding.callback(*params)
