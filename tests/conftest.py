import os

# Must be set before anything under app/ is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["WEATHER_API_KEY"] = "dummy_weather_api_key_for_tests"
os.environ["API_BASE_URL"] = "http://testserver"
for var in ("SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS"):
    os.environ[var] = ""

from datetime import datetime, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core.db import Base, engine, SessionLocal
from app.dependencies.services import get_weather_client, get_mx_checker, get_mailer
from app.main import app
from app.models.subscription import Subscription, Frequency
from app.models.token import Token, TokenType
from app.services.email import Mailer
from app.services.mx import EmailDomainError
from app.services.store import generate_token_value
from app.services.weather import WeatherClient

LONDON = {
    "location": {"name": "London"},
    "current": {"temp_c": 15, "humidity": 70, "condition": {"text": "Partly cloudy"}},
}


class FakeUpstream:
    """Programmable stand-in for WeatherAPI.com served through httpx.MockTransport."""

    def __init__(self):
        self.status_code = 200
        self.payload = LONDON
        self.exc = None
        self.requests = []

    def not_found(self):
        self.status_code = 400
        self.payload = {"error": {"code": 1006, "message": "No matching location found."}}

    def service_error(self, code=2008, message="API key has been disabled."):
        self.status_code = 403
        self.payload = {"error": {"code": code, "message": message}}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc:
            raise self.exc
        return httpx.Response(self.status_code, json=self.payload)


class FakeMXChecker:
    def __init__(self):
        self.error = None
        self.checked = []

    async def verify_email_domain(self, email: str):
        self.checked.append(email)
        if self.error:
            raise EmailDomainError(email.rpartition("@")[2], self.error)


class RecordingMailer(Mailer):
    name = "recording"

    def __init__(self):
        super().__init__(sender="noreply@weatherapi.app")
        self.sent = []
        self.fail = False

    async def deliver(self, message):
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append(message)

    def bodies(self):
        return [message.get_body(("plain",)).get_content() for message in self.sent]


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def weather_client(upstream):
    return WeatherClient(
        api_key="test-key",
        base_url="http://weather.test/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)),
    )


@pytest.fixture
def mx_checker():
    return FakeMXChecker()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(weather_client, mx_checker, mailer):
    app.dependency_overrides[get_weather_client] = lambda: weather_client
    app.dependency_overrides[get_mx_checker] = lambda: mx_checker
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_subscription(db):
    def _make(email="jane@example.com", city="London", frequency=Frequency.daily, confirmed=False):
        subscription = Subscription(email=email, city=city, frequency=frequency, confirmed=confirmed)
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription
    return _make


@pytest.fixture
def make_token(db):
    def _make(subscription, token_type=TokenType.confirmation, expires_at="default"):
        if expires_at == "default":
            expires_at = datetime.utcnow() + timedelta(hours=24) if token_type == TokenType.confirmation else None
        token = Token(
            subscription_id=subscription.id,
            token=generate_token_value(),
            type=token_type,
            expires_at=expires_at,
        )
        db.add(token)
        db.commit()
        db.refresh(token)
        return token
    return _make
