"""
Tests for driver functionality.
"""

import base64
import io
import json

import pytest

from restfacade import AwsApiGatewayDriver, Response, WSGIDriver
from restfacade.drivers import parse_params


class TestParseParams:
    """Test query string and form parsing."""

    def test_single_values_are_unwrapped(self):
        assert parse_params("status=any&page=2") == {"status": "any", "page": "2"}

    def test_repeated_values_become_lists(self):
        assert parse_params("id=1&id=2") == {"id": ["1", "2"]}

    def test_bracket_suffix_becomes_list(self):
        assert parse_params("status[]=completed") == {"status": ["completed"]}

    def test_blank_values_are_kept(self):
        assert parse_params("fields=") == {"fields": ""}

    def test_empty(self):
        assert parse_params("") == {}


class TestWSGIDriver:
    """Test the WSGI driver."""

    def setup_method(self):
        from restfacade import ApiServer, Identity, SiteConfig

        self.server = ApiServer(SiteConfig(home_url="http://shop.example.com"))
        self.server.hooks.add_filter("authenticate", lambda user, request: Identity(1))
        self.driver = WSGIDriver(self.server)

    def _environ(self, method="GET", path="/", query="", body=b"", **extra):
        environ = {
            "REQUEST_METHOD": method,
            "SCRIPT_NAME": "",
            "PATH_INFO": path,
            "QUERY_STRING": query,
            "CONTENT_LENGTH": str(len(body)) if body else "",
            "wsgi.input": io.BytesIO(body),
        }
        environ.update(extra)
        return environ

    def test_convert_to_request(self):
        environ = self._environ(
            path="/orders",
            query="status=any&id=1&id=2",
            SCRIPT_NAME="/wc-api/v2",
            HTTP_ACCEPT="application/json",
            HTTP_X_API_KEY="ck_1",
        )

        request = self.driver.convert_to_request(environ)

        assert request.method == "GET"
        assert request.path == "/orders"
        assert request.query_params == {"status": "any", "id": ["1", "2"]}
        assert request.get_accept_header() == "application/json"
        assert request.get_header("X-Api-Key") == "ck_1"
        assert request.request_uri == "/wc-api/v2/orders?status=any&id=1&id=2"

    def test_form_body(self):
        body = b"note=Left+at+door&customer_note=1"
        environ = self._environ("POST", "/orders/1/notes", body=body,
                                CONTENT_TYPE="application/x-www-form-urlencoded")

        request = self.driver.convert_to_request(environ)

        assert request.body_params == {"note": "Left at door", "customer_note": "1"}
        assert request.raw_body == "note=Left+at+door&customer_note=1"

    def test_body_is_read_up_to_content_length(self):
        environ = self._environ(body=b'{"a": 1}')
        environ["wsgi.input"] = io.BytesIO(b'{"a": 1}trailing')

        assert self.driver.convert_to_request(environ).raw_body == '{"a": 1}'

    def test_invalid_content_length(self):
        environ = self._environ(CONTENT_LENGTH="abc")

        assert self.driver.convert_to_request(environ).raw_body == ""

    def test_wsgi_call(self):
        self.server.add_route("/orders", lambda: {"orders": []})
        captured = {}

        def start_response(status, headers):
            captured["status"] = status
            captured["headers"] = dict(headers)

        body = self.driver(self._environ(path="/orders"), start_response)

        assert captured["status"] == "200 OK"
        assert captured["headers"]["Content-Type"] == "application/json; charset=utf-8"
        assert captured["headers"]["Content-Length"] == str(len(b"".join(body)))
        assert json.loads(b"".join(body)) == {"orders": []}

    def test_wsgi_error_status(self):
        captured = {}

        body = self.driver(self._environ(path="/missing"), lambda status, headers: captured.update(status=status))

        assert captured["status"] == "404 Not Found"
        assert json.loads(b"".join(body))["errors"][0]["code"] == "aftership_api_no_route"

    def test_convert_from_response_needs_start_response(self):
        with pytest.raises(ValueError):
            self.driver.convert_from_response(Response(), {})


class TestAwsApiGatewayDriver:
    """Test the AWS API Gateway driver."""

    def setup_method(self):
        from restfacade import ApiServer, Identity

        self.server = ApiServer()
        self.server.hooks.add_filter("authenticate", lambda user, request: Identity(1))
        self.driver = AwsApiGatewayDriver(self.server)

    def test_convert_to_request_basic(self):
        event = {
            "httpMethod": "GET",
            "path": "/orders",
            "headers": {"Accept": "application/xml", "X-Null": None},
            "queryStringParameters": {"status": "any", "empty": None},
            "body": None,
        }

        request = self.driver.convert_to_request(event)

        assert request.method == "GET"
        assert request.path == "/orders"
        assert request.get_accept_header() == "application/xml"
        assert request.get_header("X-Null") is None
        assert request.query_params == {"status": "any"}
        assert request.request_uri == "/orders?status=any"
        assert request.raw_body == ""

    def test_multi_value_query_parameters(self):
        event = {
            "httpMethod": "GET",
            "path": "/orders",
            "queryStringParameters": {"id": "2"},
            "multiValueQueryStringParameters": {"id": ["1", "2"], "status": ["any"]},
        }

        request = self.driver.convert_to_request(event)

        assert request.query_params == {"id": ["1", "2"], "status": "any"}

    def test_base64_body(self):
        event = {
            "httpMethod": "POST",
            "path": "/orders",
            "headers": {"Content-Type": "application/json"},
            "body": base64.b64encode(b'{"order": {}}').decode("ascii"),
            "isBase64Encoded": True,
        }

        assert self.driver.convert_to_request(event).raw_body == '{"order": {}}'

    def test_binary_base64_body(self):
        event = {
            "httpMethod": "GET",
            "path": "/",
            "body": base64.b64encode(b"\xff\xfe").decode("ascii"),
            "isBase64Encoded": True,
        }

        request = self.driver.convert_to_request(event)
        result = self.driver.handle_event(event)

        assert request.body == b"\xff\xfe"
        assert request.raw_body == "\ufffd\ufffd"
        assert result["statusCode"] == 200
        assert "store" in json.loads(result["body"])

    def test_binary_base64_form_body(self):
        event = {
            "httpMethod": "POST",
            "path": "/orders",
            "headers": {"Content-Type": "application/x-www-form-urlencoded"},
            "body": base64.b64encode(b"status=completed&note=\xff").decode("ascii"),
            "isBase64Encoded": True,
        }

        assert self.driver.convert_to_request(event).body_params == {"status": "completed", "note": "\ufffd"}

    def test_form_body(self):
        event = {
            "httpMethod": "POST",
            "path": "/orders",
            "headers": {"content-type": "application/x-www-form-urlencoded; charset=utf-8"},
            "body": "status=completed",
        }

        assert self.driver.convert_to_request(event).body_params == {"status": "completed"}

    def test_convert_from_response(self):
        response = Response(200, '{"a": 1}', content_type="application/json; charset=utf-8")
        response.set_header("Link", '<http://x/?page=2>; rel="next"', replace=False)
        response.set_header("Link", '<http://x/?page=3>; rel="last"', replace=False)

        result = self.driver.convert_from_response(response, {})

        assert result["statusCode"] == 200
        assert result["body"] == '{"a": 1}'
        assert result["isBase64Encoded"] is False
        assert result["headers"]["Content-Type"] == "application/json; charset=utf-8"
        assert result["multiValueHeaders"]["Link"] == [
            '<http://x/?page=2>; rel="next"',
            '<http://x/?page=3>; rel="last"',
        ]

    def test_handle_event(self):
        self.server.add_route(r"/orders/(?P<id>\d+)", lambda id: {"order": {"id": int(id)}})

        result = self.driver.handle_event({"httpMethod": "GET", "path": "/orders/5"})

        assert result["statusCode"] == 200
        assert json.loads(result["body"]) == {"order": {"id": 5}}

    def test_head_event_has_empty_body(self):
        result = self.driver.handle_event({"httpMethod": "HEAD", "path": "/"})

        assert result["statusCode"] == 200
        assert result["body"] == ""

    def test_head_event_reports_get_length(self):
        get = self.driver.handle_event({"httpMethod": "GET", "path": "/"})
        head = self.driver.handle_event({"httpMethod": "HEAD", "path": "/"})

        assert head["headers"]["Content-Length"] == str(len(get["body"].encode("utf-8")))
        assert head["multiValueHeaders"]["Content-Length"] == [head["headers"]["Content-Length"]]
