"""Test fixtures for the café client tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import requests
from requests.cookies import RequestsCookieJar

from cafe_client.cart import CartStore
from cafe_client.client import ApiTransport, OrderClient
from cafe_client.schemas import MenuItem
from client_fakes import FakeConnector


@pytest.fixture
def latte():
    """A menu item costing 4.50."""
    return MenuItem(id="a", name="Latte", description="Espresso with steamed milk", cost="4.50", category="coffee")


@pytest.fixture
def cookie():
    """A menu item costing 1.00."""
    return MenuItem(id="b", name="Cookie", description="Chocolate chip", cost="1.00", category="pastry")


@pytest.fixture
def cart():
    """An empty cart."""
    return CartStore()


@pytest.fixture
def http_session():
    """A ``requests.Session`` double; set ``request.return_value`` per test."""
    session = MagicMock(spec=requests.Session)
    session.cookies = RequestsCookieJar()
    return session


@pytest.fixture
def transport(http_session):
    """Transport bound to the session double."""
    return ApiTransport("http://cafe.test", session=http_session, timeout=2.0)


@pytest.fixture
def order_client(transport):
    """Order client over the session double."""
    return OrderClient(transport)


@pytest.fixture
def mock_order_client():
    """An ``OrderClient`` whose coroutines are AsyncMocks."""
    return AsyncMock(spec=OrderClient)


@pytest.fixture
def connector():
    """Stand-in for ``websockets.connect``."""
    return FakeConnector()
