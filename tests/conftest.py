import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.services.identity import MockIdentityService
from app.services.payment import MockPaymentService
from app.services.storage.mock import MockStorageService

WEBHOOK_SECRET = "whsec_test"
FRONTEND_URL = "http://frontend.test"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        env_mode="development",
        database_url="sqlite+aiosqlite:///:memory:",
        frontend_url=FRONTEND_URL,
        stripe_webhook_secret=WEBHOOK_SECRET,
        search_page_size=10,
    )


@pytest.fixture
def payment():
    return MockPaymentService(
        checkout_base_url="http://checkout.test",
        webhook_secret=WEBHOOK_SECRET,
        min_latency=0,
        max_latency=0,
    )


@pytest.fixture
def storage():
    return MockStorageService(base_url="http://images.test")


@pytest.fixture
def identity():
    return MockIdentityService(revoked=["revoked-token"])


@pytest.fixture
def client(settings, payment, storage, identity):
    app = create_app(
        settings,
        payment_service=payment,
        identity_service=identity,
        storage_service=storage,
    )
    with TestClient(app) as test_client:
        yield test_client


def auth(subject: str) -> dict:
    return {"Authorization": f"Bearer {subject}"}


@pytest.fixture
def provision(client):
    """Create a local account for ``subject`` and return its JSON."""
    def _provision(subject: str, email: str = None) -> dict:
        response = client.post(
            "/api/my/user",
            json={"auth0Id": subject, "email": email or f"{subject.split('|')[-1]}@example.com"},
            headers=auth(subject),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _provision


def restaurant_fields(
    name: str = "Casa Manila",
    city: str = "Manila",
    country: str = "Philippines",
    delivery_price: float = 50,
    estimated_delivery_time: int = 30,
    cuisines=("Filipino", "Seafood"),
    menu=(("Adobo", 180), ("Sinigang", 220.5)),
    menu_ids=None,
) -> dict:
    """Multipart fields the way the frontend's FormData sends them."""
    data = {
        "restaurantName": name,
        "city": city,
        "country": country,
        "deliveryPrice": str(delivery_price),
        "estimatedDeliveryTime": str(estimated_delivery_time),
    }
    for index, cuisine in enumerate(cuisines):
        data[f"cuisines[{index}]"] = cuisine
    for index, (item_name, price) in enumerate(menu):
        data[f"menuItems[{index}][name]"] = item_name
        data[f"menuItems[{index}][price]"] = str(price)
        if menu_ids and index < len(menu_ids) and menu_ids[index]:
            data[f"menuItems[{index}][_id]"] = menu_ids[index]
    return data


def image_part(content_type: str = "image/png", data: bytes = PNG_BYTES) -> dict:
    return {"imageFile": ("front.png", data, content_type)}


@pytest.fixture
def create_restaurant(client, provision):
    """Provision ``subject`` and create their restaurant; returns its JSON."""
    def _create(subject: str, **fields) -> dict:
        provision(subject)
        response = client.post(
            "/api/my/restaurant",
            data=restaurant_fields(**fields),
            files=image_part(),
            headers=auth(subject),
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create
