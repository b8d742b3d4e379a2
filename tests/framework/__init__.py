"""
Test framework for API testing using 4-layer architecture.
"""

from .dsl import RestApiDsl, HttpRequest, HttpResponse
from .drivers import DirectDriver, WsgiDriver, AwsLambdaDriver
from .multi_driver_base import MultiDriverTestBase

__all__ = [
    'RestApiDsl',
    'HttpRequest',
    'HttpResponse',
    'DirectDriver',
    'WsgiDriver',
    'AwsLambdaDriver',
    'MultiDriverTestBase',
]
