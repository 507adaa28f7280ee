from fastapi import Request

from app.core.config import Settings
from app.services.email import Mailer
from app.services.mx import MXChecker
from app.services.weather import WeatherClient

# Collaborators are built once in the app lifespan and stored on app.state


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_weather_client(request: Request) -> WeatherClient:
    return request.app.state.weather


def get_mx_checker(request: Request) -> MXChecker:
    return request.app.state.mx


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
