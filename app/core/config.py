# app/core/config.py

import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseModel):
    database_url: str | None = None
    db_echo: bool = False

    weather_api_key: str | None = None
    weather_api_url: str = "http://api.weatherapi.com/v1"
    weather_api_timeout: float = 10.0

    port: int = 3000
    api_base_url: str = "http://localhost:3000"

    smtp_host: str | None = None
    smtp_port: int | None = None
    smtp_user: str | None = None
    smtp_pass: str | None = None
    smtp_secure: bool = False
    email_from: str = "noreply@weatherapi.app"

    log_level: str = "INFO"

    @property
    def smtp_configured(self) -> bool:
        return all([self.smtp_host, self.smtp_port, self.smtp_user, self.smtp_pass])


def _flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() == "true"


def normalize_database_url(url: str | None) -> str | None:
    # Hosted Postgres providers hand out postgres:// which SQLAlchemy rejects
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url and url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def load_config() -> Settings:
    port = int(os.getenv("PORT", 3000))
    smtp_port = os.getenv("SMTP_PORT")

    return Settings(
        database_url=normalize_database_url(os.getenv("DATABASE_URL")),
        db_echo=_flag("DB_ECHO"),
        weather_api_key=os.getenv("WEATHER_API_KEY") or None,
        weather_api_url=os.getenv("WEATHER_API_URL", "http://api.weatherapi.com/v1").rstrip("/"),
        weather_api_timeout=float(os.getenv("WEATHER_API_TIMEOUT", 10)),
        port=port,
        api_base_url=os.getenv("API_BASE_URL", f"http://localhost:{port}").rstrip("/"),
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=int(smtp_port) if smtp_port else None,
        smtp_user=os.getenv("SMTP_USER") or None,
        smtp_pass=os.getenv("SMTP_PASS") or None,
        smtp_secure=_flag("SMTP_SECURE"),
        email_from=os.getenv("EMAIL_FROM", "noreply@weatherapi.app"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
