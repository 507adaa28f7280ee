from typing import Annotated
from fastapi import APIRouter, Depends, Form, Path
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.db import get_db
from app.dependencies.services import get_settings, get_weather_client, get_mx_checker, get_mailer
from app.schemas.subscription import SubscribeForm, MessageResponse, TOKEN_PATTERN
from app.services import subscription_service
from app.services.email import Mailer
from app.services.mx import MXChecker
from app.services.weather import WeatherClient

router = APIRouter()

TokenParam = Annotated[str, Path(pattern=TOKEN_PATTERN, description="Token must be a 64-character hex string")]


@router.post("/subscribe", response_model=MessageResponse)
async def subscribe(
    payload: Annotated[SubscribeForm, Form()],
    db: Session = Depends(get_db),
    weather: WeatherClient = Depends(get_weather_client),
    mx: MXChecker = Depends(get_mx_checker),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    return await subscription_service.subscribe(payload, db, weather, mx, mailer, settings)


@router.get("/confirm/{token}", response_model=MessageResponse)
async def confirm(
    token: TokenParam,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    return await subscription_service.confirm(token, db, mailer, settings)


@router.get("/unsubscribe/{token}", response_model=MessageResponse)
async def unsubscribe(token: TokenParam, db: Session = Depends(get_db)):
    return await subscription_service.unsubscribe(token, db)
