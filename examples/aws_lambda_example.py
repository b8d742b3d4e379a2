"""
Example demonstrating how to serve the REST facade from AWS Lambda behind API Gateway.

The server and driver are created once per Lambda container, so warm
invocations reuse them.
"""

import os

from restfacade import ApiError, ApiServer, AwsApiGatewayDriver, Identity, SiteConfig

server = ApiServer(SiteConfig.from_options({
    "blogname": "Lambda Store",
    "home": os.environ.get("STORE_HOME_URL", "https://api.example.com"),
    "aftership_api_enabled": os.environ.get("STORE_API_ENABLED", "yes"),
}))

driver = AwsApiGatewayDriver(server)


@server.hooks.filter("authenticate")
def api_key(user, request):
    if request.get_header("X-Api-Key") == os.environ.get("STORE_API_KEY", "ck_lambda"):
        return Identity(1, "lambda")
    return ApiError("aftership_api_authentication_error", "Consumer key is invalid", status=401)


@server.route(r"/products/(?P<id>\d+)")
def get_product(id, fields=None):
    product = {"id": int(id), "title": f"Product {id}", "price": "10.00"}
    if fields:
        product = {k: v for k, v in product.items() if k in fields.split(",")}
    return {"product": product}


def lambda_handler(event, context):
    """AWS Lambda entry point."""
    return driver.handle_event(event, context)


if __name__ == "__main__":
    event = {
        "httpMethod": "GET",
        "path": "/products/7",
        "headers": {"X-Api-Key": "ck_lambda", "Accept": "application/json"},
        "queryStringParameters": {"fields": "id,title"},
        "body": None,
    }
    print(lambda_handler(event, None))
