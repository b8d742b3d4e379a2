"""
Basic usage example for the REST facade.

This example demonstrates:
- Route registration with regex patterns and capability masks
- API key authentication through the authenticate hook
- Pagination headers
- Returned and raised API errors
- Serving the API over WSGI
"""

import logging
import sys
from wsgiref.simple_server import make_server

from restfacade import ApiError, ApiServer, Identity, Request, SiteConfig, WSGIDriver

# In-memory data store for this example
orders_db = {
    1: {"id": 1, "status": "completed", "total": "19.99", "created_at": "2024-01-15 10:30:00"},
    2: {"id": 2, "status": "processing", "total": "5.00", "created_at": "2024-02-01 08:00:00"},
    3: {"id": 3, "status": "pending", "total": "42.50", "created_at": "2024-02-03 17:45:12"},
}

server = ApiServer(SiteConfig(
    name="Example Store",
    home_url="http://localhost:8000",
    timezone="Europe/London",
    currency="GBP",
))


@server.hooks.filter("authenticate")
def api_key(user, request):
    """Accept requests carrying the demo API key."""
    key = request.get_header("X-Api-Key")
    if key == "ck_demo":
        return Identity(1, "demo")
    if key is not None:
        return ApiError("aftership_api_authentication_error", "Consumer key is invalid", status=401)
    return user


def order_data(order):
    return {**order, "created_at": server.format_datetime(order["created_at"], convert_to_utc=True)}


@server.route("/orders")
def list_orders(status="any", page="1"):
    """List orders, two per page."""
    orders = [o for o in orders_db.values() if status == "any" or o["status"] == status]
    page = int(page)
    total_pages = (len(orders) + 1) // 2
    server.add_pagination_headers({"current_page": page, "total_items": len(orders), "total_pages": total_pages})
    return {"orders": [order_data(o) for o in orders[(page - 1) * 2:page * 2]]}


@server.route(r"/orders/(?P<id>\d+)")
def get_order(id):
    """Get an order by ID."""
    order = orders_db.get(int(id))
    if order is None:
        return ApiError("aftership_api_invalid_order_id", "Invalid order ID", status=404)
    return {"order": order_data(order)}


@server.route("/orders/count")
def count_orders():
    return {"count": len(orders_db)}


def main():
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    for path in ("/", "/orders", "/orders/1", "/orders/9"):
        response = server.execute(Request("GET", path, headers={"X-Api-Key": "ck_demo"}))
        print(f"GET {path}: {response.status_code}")
        print(f"Response: {response.body}")
        print()

    if "--serve" in sys.argv:
        print("Serving on http://localhost:8000")
        make_server("", 8000, WSGIDriver(server)).serve_forever()


if __name__ == "__main__":
    main()
