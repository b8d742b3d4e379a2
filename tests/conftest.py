"""
Pytest configuration: shared fixtures and multi-driver parametrization.

Test classes inheriting from MultiDriverTestBase get their 'api' fixture
parametrized with every enabled driver.
"""

import pytest

from restfacade import ApiServer, Hooks, Identity, SiteConfig
from tests.framework.multi_driver_base import MultiDriverTestBase


def pytest_generate_tests(metafunc):
    """
    Pytest hook to automatically parametrize the 'api' fixture for MultiDriverTestBase subclasses.

    This ensures every test method in classes that inherit from MultiDriverTestBase
    gets run against all enabled drivers.
    """
    if (metafunc.cls is not None and
            issubclass(metafunc.cls, MultiDriverTestBase) and
            'api' in metafunc.fixturenames):
        drivers = metafunc.cls.get_available_drivers()
        metafunc.parametrize('api', drivers, indirect=True, ids=[f"driver-{d}" for d in drivers])


def allow_all(user, request):
    return Identity(1, "tester")


@pytest.fixture
def config():
    """Site configuration used by most tests."""
    return SiteConfig(
        name="Test Store",
        description="Just another store",
        url="http://shop.example.com",
        home_url="http://shop.example.com",
        version="2.6.0",
        currency="USD",
        weight_unit="kg",
    )


@pytest.fixture
def hooks():
    """Hooks that authenticate every request."""
    hooks = Hooks()
    hooks.add_filter("authenticate", allow_all)
    return hooks


@pytest.fixture
def server(config, hooks):
    """A server with an open authentication gate."""
    return ApiServer(config, hooks)
