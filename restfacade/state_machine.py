"""
State machine serving one API request from negotiation to rendering.
"""

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Optional

from .content_renderers import ContentRenderer, JSONRenderer
from .error_models import ErrorResponse
from .exceptions import ApiError, ErrorKind
from .models import Request, Response
from .negotiation import negotiate_codec

if TYPE_CHECKING:
    from .application import ApiServer

logger = logging.getLogger(__name__)


class StateMachineResult:
    """Result from a state machine decision point."""

    def __init__(self, continue_processing: bool, response: Optional[Response] = None):
        self.continue_processing = continue_processing
        self.response = response


class RequestStateMachine:
    """Serves one request: enabled check, authentication, dispatch, rendering.

    Each state either lets processing continue, stops with a finished
    response, or stops with an error result that is still rendered.
    """

    def __init__(self, server: "ApiServer"):
        self.server = server
        self.request: Optional[Request] = None
        self.codec: Optional[ContentRenderer] = None
        self.response = Response()
        self.result: Any = None

    def process_request(self, request: Request) -> Response:
        """Process a request through the state machine."""
        self.request = request
        tokens = self.server.bind_request(request, self.response)
        try:
            return self._process(request)
        finally:
            self.server.unbind_request(tokens)

    def _process(self, request: Request) -> Response:
        logger.debug(f"Starting request processing for {request.method} {request.path}")

        def log_state_transition(state_name: str, result: StateMachineResult):
            status = "CONTINUE" if result.continue_processing else "STOP"
            response_code = result.response.status_code if result.response else "None"
            logger.debug(f"State {state_name}: {status} (response: {response_code})")

        self.server.hooks.do_action("before_serve", self.server, request)

        self.codec = negotiate_codec(request, self.server.hooks, self.server.version_marker)
        self.response.set_header("Content-Type", self.codec.get_content_type(request))

        result = self.state_api_enabled()
        log_state_transition("api_enabled", result)
        if result.response is not None:
            return result.response

        for state_name, state in (("authenticated", self.state_authenticated),
                                  ("dispatched", self.state_dispatched)):
            result = state()
            log_state_transition(state_name, result)
            if not result.continue_processing:
                break

        return self.state_render()

    def state_api_enabled(self) -> StateMachineResult:
        """Stop with a 404 error body when the API is administratively disabled."""
        enabled = self.server.hooks.apply_filters("api_enabled", True, self.request)
        if enabled and self.server.config.api_enabled:
            return StateMachineResult(True)

        logger.warning(f"API disabled, rejecting {self.request.method} {self.request.path}")
        error = ApiError.from_kind(ErrorKind.API_DISABLED)
        self.response.status_code = HTTPStatus.NOT_FOUND
        self.response.body = self._render(ErrorResponse.from_api_error(error).to_wire())
        return StateMachineResult(False, self.response)

    def state_authenticated(self) -> StateMachineResult:
        """Run the authentication gate."""
        self.result = self.server.check_authentication(self.request)
        return StateMachineResult(not isinstance(self.result, ApiError))

    def state_dispatched(self) -> StateMachineResult:
        """Dispatch to the matching handler."""
        try:
            self.result = self.server.dispatch(self.request, self.codec)
        except ApiError as e:
            self.result = e
        except Exception as e:
            logger.error(f"Unhandled exception dispatching {self.request.method} {self.request.path}: {e}")
            self.result = ApiError.from_kind(ErrorKind.INTERNAL_ERROR)
        return StateMachineResult(not isinstance(self.result, ApiError))

    def state_render(self) -> Response:
        """Turn the result into the response body."""
        result = self.result
        if isinstance(result, ApiError):
            if result.status is not None:
                self.response.status_code = result.status
            result = ErrorResponse.from_api_error(result).to_wire()

        # Hooks may serve the response themselves
        served = self.server.hooks.apply_filters("serve_request", False, result, self.server, self.request)
        if served:
            logger.debug(f"Response for {self.request.method} {self.request.path} served by hook")
            return self.response

        self._send_body(self._render(result))
        return self.response

    def error_response(self, error: ApiError) -> Response:
        """Replace the response with an error after processing failed.

        The error is rendered with the negotiated codec, or as JSON when
        processing failed before one was chosen.
        """
        self.response = Response(error.status or HTTPStatus.INTERNAL_SERVER_ERROR)
        wire = ErrorResponse.from_api_error(error).to_wire()
        if self.codec is None:
            fallback = JSONRenderer(jsonp_enabled=False)
            self.response.set_header("Content-Type", fallback.get_content_type())
            body = fallback.generate_response(wire)
        else:
            self.response.set_header("Content-Type", self.codec.get_content_type(self.request))
            body = self._render(wire)
        self._send_body(body)
        return self.response

    def _send_body(self, body: str) -> None:
        if self.request is not None and self.request.method == "HEAD":
            # HEAD carries the length of the body a GET would have sent
            self.response.set_header("Content-Length", len(body.encode("utf-8")))
        else:
            self.response.body = body

    def _render(self, data: Any) -> str:
        try:
            return self.codec.generate_response(data, self.request, self.response.status_code)
        except ApiError as e:
            # The codec refused the request (e.g. a bad JSONP callback); answer in plain JSON
            logger.warning(f"Rendering failed for {self.request.method} {self.request.path}: {e.message}")
            if e.status is not None:
                self.response.status_code = e.status
            fallback = JSONRenderer(jsonp_enabled=False)
            self.response.set_header("Content-Type", fallback.get_content_type())
            return fallback.generate_response(ErrorResponse.from_api_error(e).to_wire())
