"""Test fixtures for the café API tests."""

import pytest
from fastapi.testclient import TestClient

from cafe_api import server
from cafe_api.hub import ConnectionHub
from cafe_api.store import CafeState


@pytest.fixture
def store(monkeypatch):
    """Fresh in-memory state installed into the server module."""
    fresh = CafeState()
    monkeypatch.setattr(server, "state", fresh)
    monkeypatch.setattr(server, "hub", ConnectionHub())
    return fresh


@pytest.fixture
def client(store):
    """Test client running the app lifespan; HTTP and sockets share one loop."""
    with TestClient(server.app) as test_client:
        yield test_client


@pytest.fixture
def order_body():
    """A valid order: two lattes and a cookie."""
    return {
        "for_name": "Ada",
        "for_email": "ada@example.com",
        "order_date": "2025-04-30 09:15:00",
        "status": "pending",
        "total": "10.00",
        "items": [
            {"item_id": "latte", "item_name": "Latte", "quantity": 2, "price": "4.50", "notes": "oat milk"},
            {"item_id": "cookie", "quantity": 1, "price": "1.00"},
        ],
    }
