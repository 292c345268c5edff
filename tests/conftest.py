import os

import pytest

# Keep the module-level app (orderflow.main) off Postgres and the broker
os.environ.setdefault("ENV_MODE", "development")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from fastapi.testclient import TestClient  # noqa: E402

from orderflow.core.config import Settings  # noqa: E402
from orderflow.main import create_app  # noqa: E402


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings for an isolated app: file-backed SQLite, no notifications."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path}/orders.db",
        notifications_enabled=False,
        total_tables=10,
        chairs_per_table=4,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """TestClient with the lifespan running, so HTTP and /ws share one loop."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def dine_in_order() -> dict:
    return {
        "userId": "u1",
        "userEmail": "u1@example.com",
        "userName": "Asha",
        "foodName": "Paneer Tikka",
        "category": "Starters",
        "type": "Veg",
        "quantity": 2,
        "price": 240,
        "tableNumber": 5,
        "chairIndices": [2, 0],
    }


@pytest.fixture
def parcel_order() -> dict:
    return {
        "userId": "u2",
        "userEmail": "u2@example.com",
        "foodName": "Chicken Biryani",
        "type": "Non-Veg",
        "quantity": 1,
        "price": 320,
        "contactNumber": "9876543210",
        "deliveryLocation": {"address": "12 MG Road", "latitude": 12.97, "longitude": 77.59},
    }
