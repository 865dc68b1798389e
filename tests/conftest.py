import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from greenleaf.main import create_app
from greenleaf.notifications import Mailer
from greenleaf.payments.gateway import PaymentGateway, PaymentIntent
from greenleaf.shared.utils import Settings, create_access_token

RAZORPAY_SECRET = "rzp_test_secret"


class FakeGateway(PaymentGateway):
    def __init__(self):
        self.calls = []

    async def create_intent(self, amount_minor_units, currency, receipt):
        self.calls.append((amount_minor_units, currency, receipt))
        return PaymentIntent(intent_id=f"order_test_{len(self.calls)}", amount=amount_minor_units, currency=currency)


class CapturingMailer(Mailer):
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, text):
        self.sent.append({"to": to, "subject": subject, "text": text})


@pytest.fixture
def test_settings():
    return Settings(
        MONGO_DB_NAME="greenleaf_test",
        SECRET_KEY="test-signing-key",
        RAZORPAY_KEY_ID="rzp_test_key",
        RAZORPAY_KEY_SECRET=RAZORPAY_SECRET,
        RESEND_API_KEY="",
        RATE_LIMIT_ENABLED=False,
    )

@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()

@pytest.fixture
def db(mongo_client, test_settings):
    return mongo_client[test_settings.MONGO_DB_NAME]

@pytest.fixture
def gateway():
    return FakeGateway()

@pytest.fixture
def mailer():
    return CapturingMailer()

@pytest.fixture
def client(test_settings, mongo_client, gateway, mailer):
    app = create_app(config=test_settings, db_client=mongo_client, gateway=gateway, mailer=mailer)
    with TestClient(app) as test_client:
        yield test_client


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register_user(client):
    """Registers an account through the API; returns ``(user_id, headers)``."""
    def _register(email="asha@gmail.com", name="Asha Rao", password="secret123"):
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"]["id"], bearer(data["token"])
    return _register

@pytest.fixture
def user(register_user):
    return register_user()

@pytest.fixture
def admin_headers(register_user, test_settings):
    admin_id, _ = register_user(email="admin@gmail.com", name="Store Admin")
    token = create_access_token({"sub": admin_id, "role": "admin"}, config=test_settings)
    return bearer(token)

@pytest.fixture
def make_product(client, admin_headers):
    def _make(name="Money Plant", price=500, **fields):
        body = {"name": name, "description": "An easy indoor plant", "type": "Plants", "price": price}
        body.update(fields)
        response = client.post("/api/products/add", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _make
