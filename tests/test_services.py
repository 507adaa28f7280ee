import dns.exception
import dns.resolver
import httpx
import pytest

from app.core.config import Settings, normalize_database_url
from app.services import email as email_service
from app.services.email import ConsoleMailer, SMTPMailer, build_mailer, send_confirmation_email
from app.services.mx import MXChecker, EmailDomainError
from app.services.weather import WeatherClient, CityNotFoundError, WeatherUnavailableError


class FakeResolver:
    def __init__(self, answers=None, exc=None):
        self.answers = answers or []
        self.exc = exc
        self.queries = []

    async def resolve(self, domain, rdtype):
        self.queries.append((domain, rdtype))
        if self.exc:
            raise self.exc
        return self.answers


# === MX ===
@pytest.mark.anyio
async def test_mx_check_accepts_domain_with_records():
    resolver = FakeResolver(answers=["10 mx.example.com."])

    await MXChecker(resolver=resolver).verify_email_domain("jane@example.com")

    assert resolver.queries == [("example.com", "MX")]


@pytest.mark.anyio
@pytest.mark.parametrize("exc", [dns.resolver.NXDOMAIN(), dns.resolver.NoAnswer()])
async def test_mx_check_rejects_missing_domain(exc):
    with pytest.raises(EmailDomainError) as info:
        await MXChecker(resolver=FakeResolver(exc=exc)).verify_email_domain("jane@nowhere.example")

    assert info.value.message == "Email domain does not exist or has no mail servers"


@pytest.mark.anyio
async def test_mx_check_reports_resolver_failure():
    with pytest.raises(EmailDomainError) as info:
        await MXChecker(resolver=FakeResolver(exc=dns.exception.Timeout())).verify_email_domain("jane@example.com")

    assert info.value.message == "Could not verify email domain"


@pytest.mark.anyio
async def test_mx_check_rejects_empty_answer():
    with pytest.raises(EmailDomainError):
        await MXChecker(resolver=FakeResolver(answers=[])).verify_email_domain("jane@example.com")


# === Weather client ===
@pytest.mark.anyio
async def test_weather_client_maps_not_found():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(400, json={"error": {"code": 1006, "message": "No matching location found."}})
    )
    client = WeatherClient("key", http_client=httpx.AsyncClient(transport=transport))

    with pytest.raises(CityNotFoundError):
        await client.get_current_weather("Atlantis")
    await client.aclose()


@pytest.mark.anyio
async def test_weather_client_treats_non_json_body_as_unavailable():
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"))
    client = WeatherClient("key", http_client=httpx.AsyncClient(transport=transport))

    with pytest.raises(WeatherUnavailableError):
        await client.fetch_current("London")
    await client.aclose()


# === Mail ===
def test_build_mailer_falls_back_to_console_without_full_credentials():
    mailer = build_mailer(Settings(smtp_host="smtp.example.com", smtp_port=587, smtp_user="user"))

    assert isinstance(mailer, ConsoleMailer)


def test_build_mailer_uses_smtp_when_configured():
    settings = Settings(
        smtp_host="smtp.example.com", smtp_port=465, smtp_user="user", smtp_pass="secret",
        smtp_secure=True, email_from="weather@example.com",
    )

    mailer = build_mailer(settings)

    assert isinstance(mailer, SMTPMailer)
    assert mailer.host == "smtp.example.com"
    assert mailer.secure is True
    assert mailer.sender == "weather@example.com"


@pytest.mark.anyio
async def test_console_mailer_logs_message(caplog):
    caplog.set_level("INFO", logger="app.services.email")
    mailer = ConsoleMailer(sender="noreply@weatherapi.app")

    message_id = await send_confirmation_email(mailer, "jane@example.com", "London", "http://x/api/confirm/abc")

    assert message_id
    assert "Subject: Confirm Your Weather API Subscription" in caplog.text
    assert "http://x/api/confirm/abc" in caplog.text


@pytest.mark.anyio
async def test_smtp_mailer_hands_message_to_aiosmtplib(monkeypatch):
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))

    monkeypatch.setattr(email_service.aiosmtplib, "send", fake_send)
    mailer = SMTPMailer("weather@example.com", "smtp.example.com", 587, "user", "secret")

    message_id = await mailer.send("jane@example.com", "Hello", "text body", "<p>html body</p>")

    assert message_id
    message, kwargs = calls[0]
    assert message["From"] == "Weather API <weather@example.com>"
    assert message["To"] == "jane@example.com"
    assert kwargs["hostname"] == "smtp.example.com"
    assert kwargs["port"] == 587
    assert kwargs["use_tls"] is False


@pytest.mark.anyio
async def test_smtp_failure_returns_none(monkeypatch):
    async def failing_send(message, **kwargs):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(email_service.aiosmtplib, "send", failing_send)
    mailer = SMTPMailer("weather@example.com", "smtp.example.com", 587, "user", "secret")

    assert await mailer.send("jane@example.com", "Hello", "text", "<p>html</p>") is None


# === Config ===
def test_database_url_is_normalized_for_psycopg():
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_database_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_database_url("sqlite://") == "sqlite://"
    assert normalize_database_url(None) is None
