"""
Tests for content negotiation.
"""

import pytest

from restfacade.content_renderers import CommonJSONRenderer, JSONRenderer, XMLRenderer
from restfacade.hooks import Hooks
from restfacade.models import Request
from restfacade.negotiation import is_json_request, is_legacy, is_xml_request, negotiate_codec


def codec_for(path, accept=None, hooks=None):
    headers = {"Accept": accept} if accept else {}
    return negotiate_codec(Request("GET", path, headers=headers), hooks)


class TestRequestedFormat:
    """Test detection of the requested format."""

    def test_json_suffix(self):
        assert is_json_request(Request("GET", "/orders.json"))
        assert is_json_request(Request("GET", "/orders.JSON"))

    def test_json_accept_header_must_match_exactly(self):
        assert is_json_request(Request("GET", "/orders", headers={"Accept": "application/json"}))
        assert not is_json_request(Request("GET", "/orders", headers={"Accept": "application/json, text/html"}))

    @pytest.mark.parametrize("accept", ["application/xml", "text/xml"])
    def test_xml_accept_header(self, accept):
        assert is_xml_request(Request("GET", "/orders", headers={"Accept": accept}))

    def test_xml_suffix(self):
        assert is_xml_request(Request("GET", "/orders.xml"))

    def test_legacy_detection(self):
        assert is_legacy(Request("GET", "/wc-api/v2/orders"))
        assert not is_legacy(Request("GET", "/wc-api/v3/orders"))
        assert not is_legacy(Request("GET", "/wc-api/V3/orders"))
        assert not is_legacy(Request("GET", "/api/v4/orders"), marker="/v4")


class TestNegotiateCodec:
    """Test codec selection."""

    def test_json_by_suffix(self):
        assert type(codec_for("/orders.json")) is JSONRenderer

    def test_json_by_accept(self):
        assert type(codec_for("/orders", "application/json")) is JSONRenderer

    def test_xml_by_suffix(self):
        assert type(codec_for("/orders.xml")) is XMLRenderer

    def test_xml_by_accept(self):
        assert type(codec_for("/orders", "text/xml")) is XMLRenderer

    def test_json_wins_over_xml(self):
        assert type(codec_for("/orders.xml", "application/json")) is JSONRenderer

    def test_default_is_json(self):
        assert type(codec_for("/orders", "text/html")) is JSONRenderer

    def test_default_codec_hook(self):
        hooks = Hooks()
        hooks.add_filter("default_codec", lambda codec, request: XMLRenderer())

        assert type(codec_for("/orders", hooks=hooks)) is XMLRenderer
        assert type(codec_for("/orders", "application/json", hooks=hooks)) is JSONRenderer

    def test_current_version_uses_envelope_codec(self):
        assert type(codec_for("/wc-api/v3/orders")) is CommonJSONRenderer
        assert type(codec_for("/wc-api/v3/orders.xml")) is CommonJSONRenderer

    def test_jsonp_enabled_hook(self):
        hooks = Hooks()
        hooks.add_filter("jsonp_enabled", lambda enabled, request: False)

        assert codec_for("/orders.json", hooks=hooks).jsonp_enabled is False
        assert codec_for("/orders.json").jsonp_enabled is True
