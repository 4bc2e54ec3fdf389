"""API fixtures — the app under test talks to the same in-memory system fixture.

Design Decisions:
    - dependency_overrides instead of running the lifespan: tests control the
      DispatchSystem (scripted RNG, no geocoder) and the clock directly
"""

import httpx
import pytest

from courier_dispatch.api.dependencies import get_dispatch
from courier_dispatch.config import Settings
from courier_dispatch.main import create_app


@pytest.fixture
def app(system):
    application = create_app(Settings(store_backend="memory", seed_on_startup=False))
    application.dependency_overrides[get_dispatch] = lambda: system
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def order_body():
    return {
        "order_type": "Groceries",
        "address": "Herzl 45, Tel Aviv, Israel",
        "latitude": 32.0853,
        "longitude": 34.7818,
        "customer_name": "Dan Israeli",
        "customer_phone": "0501234567",
        "weight": 2.5,
    }


@pytest.fixture
def courier_body():
    return {
        "id": 123456782,
        "name": "Sarah Levi",
        "phone": "0529876543",
        "email": "sarah@delivery.com",
        "delivery_type": "Car",
        "location": {"latitude": 32.0800, "longitude": 34.8130},
    }
