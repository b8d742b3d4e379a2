"""
Store API tests using multi-driver approach.

Tests routing, authentication, content negotiation, pagination and the
disabled-API switch across all drivers.
"""

from restfacade import ApiError, ApiServer, Identity, SiteConfig
from tests.framework import MultiDriverTestBase

API_KEY = "ck_test"

ORDERS = [{"id": i, "status": "completed" if i % 2 else "pending"} for i in range(1, 26)]


def api_key_authenticator(user, request):
    """Authenticate requests carrying the test API key."""
    key = request.get_header("X-Api-Key")
    if key == API_KEY:
        return Identity(1, "shop_manager")
    if key is not None:
        return ApiError("aftership_api_authentication_error", "Consumer key is invalid", status=401)
    return user


def create_store_server(**config) -> ApiServer:
    """Create a store server with an orders resource."""
    options = {"name": "Test Store", "home_url": "http://shop.example.com"}
    options.update(config)
    server = ApiServer(SiteConfig(**options))
    server.hooks.add_filter("authenticate", api_key_authenticator)

    @server.route("/orders")
    def list_orders(page="1", status="any"):
        orders = [o for o in ORDERS if status == "any" or o["status"] == status]
        page = int(page)
        per_page = 10
        total_pages = (len(orders) + per_page - 1) // per_page
        server.add_pagination_headers({
            "current_page": page,
            "total_items": len(orders),
            "total_pages": total_pages,
        })
        return {"orders": orders[(page - 1) * per_page:page * per_page]}

    @server.route(r"/orders/(?P<id>\d+)")
    def get_order(id):
        for order in ORDERS:
            if order["id"] == int(id):
                return {"order": order}
        return ApiError("aftership_api_invalid_order_id", "Invalid order ID", status=404)

    return server


class TestStoreApi(MultiDriverTestBase):
    """Test the store API across all drivers."""

    def create_server(self) -> ApiServer:
        return create_store_server()

    def test_index(self, api):
        api_client, driver_name = api

        data = api_client.expect_successful_retrieval(api_client.get_resource("/", API_KEY))

        assert data["store"]["name"] == "Test Store"
        assert data["store"]["routes"]["/orders/<id>"] == {"supports": ["HEAD", "GET"]}

    def test_get_order(self, api):
        api_client, driver_name = api

        data = api_client.expect_successful_retrieval(api_client.get_resource("/orders/3", API_KEY))

        assert data == {"order": {"id": 3, "status": "completed"}}

    def test_unknown_order(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/orders/999", API_KEY)

        api_client.expect_error(response, 404, "aftership_api_invalid_order_id")

    def test_unknown_route(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/customers", API_KEY)

        api_client.expect_error(response, 404, "aftership_api_no_route")

    def test_missing_credentials(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/orders")

        api_client.expect_error(response, 500, "aftership_api_authentication_error")

    def test_invalid_credentials(self, api):
        api_client, driver_name = api

        response = api_client.get_resource("/orders", "ck_wrong")

        api_client.expect_error(response, 401, "aftership_api_authentication_error")

    def test_writes_are_unsupported(self, api):
        api_client, driver_name = api

        request = api_client.post("/orders").with_json_body({"order": {}}).with_api_key(API_KEY)
        response = api_client.execute(request)

        api_client.expect_error(response, 400, "aftership_api_unsupported_method")

    def test_head_has_no_body(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.head("/orders/3").with_api_key(API_KEY))

        assert response.status_code == 200
        assert response.body is None
        assert response.content_type == "application/json; charset=utf-8"

    def test_xml(self, api):
        api_client, driver_name = api

        response = api_client.get_as_xml("/orders/3", API_KEY)
        root = response.get_xml_body()

        assert response.status_code == 200
        assert response.content_type == "application/xml; charset=utf-8"
        assert root.tag == "order"
        assert root.find("status").text == "completed"

    def test_jsonp(self, api):
        api_client, driver_name = api

        request = api_client.get("/orders/3").with_api_key(API_KEY).with_query(_jsonp="showOrder")
        response = api_client.execute(request)

        assert response.content_type == "application/javascript; charset=utf-8"
        assert response.body.startswith("/**/showOrder(")

    def test_pagination_headers(self, api):
        api_client, driver_name = api

        response = api_client.search_resources("/orders", {"page": "2"}, API_KEY)
        data = api_client.expect_successful_retrieval(response)

        assert [o["id"] for o in data["orders"]] == list(range(11, 21))
        assert response.get_header("X-WC-Total") == "25"
        assert response.get_header("X-WC-TotalPages") == "3"
        assert response.get_all_headers("Link") == [
            '<http://shop.example.com/orders?page=1>; rel="first"',
            '<http://shop.example.com/orders?page=1>; rel="prev"',
            '<http://shop.example.com/orders?page=3>; rel="next"',
            '<http://shop.example.com/orders?page=3>; rel="last"',
        ]

    def test_query_filter(self, api):
        api_client, driver_name = api

        response = api_client.search_resources("/orders", {"status": "pending"}, API_KEY)
        data = api_client.expect_successful_retrieval(response)

        assert all(o["status"] == "pending" for o in data["orders"])
        assert response.get_header("X-WC-Total") == "12"


class TestDisabledStoreApi(MultiDriverTestBase):
    """Test a store whose API has been switched off."""

    def create_server(self) -> ApiServer:
        return create_store_server(api_enabled=False)

    def test_every_request_is_rejected(self, api):
        api_client, driver_name = api

        for path in ("/", "/orders", "/orders/1"):
            response = api_client.get_resource(path, API_KEY)
            api_client.expect_error(response, 404, "aftership_api_disabled")

    def test_head_still_has_a_body(self, api):
        api_client, driver_name = api

        response = api_client.execute(api_client.head("/orders"))

        api_client.expect_error(response, 404, "aftership_api_disabled")
