import logging
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.models.token import TokenType
from app.schemas.subscription import SubscribeForm
from app.services.email import Mailer, send_confirmation_email, send_subscription_confirmed_email
from app.services.mx import MXChecker, EmailDomainError
from app.services.store import SubscriptionStore
from app.services.weather import (
    WeatherClient,
    WeatherConfigError,
    CityNotFoundError,
    WeatherServiceError,
    WeatherUnavailableError,
    WeatherPayloadError,
)

logger = logging.getLogger(__name__)


def build_link(settings: Settings, action: str, token: str) -> str:
    return f"{settings.api_base_url}/api/{action}/{token}"


# === Subscribe ===
async def verify_city(weather: WeatherClient, city: str):
    try:
        await weather.get_current_weather(city)
    except WeatherConfigError:
        logger.error("❌ WEATHER_API_KEY is not set for city validation.")
        raise HTTPException(status_code=500, detail="Server configuration error, please try again later.")
    except CityNotFoundError:
        raise HTTPException(status_code=400, detail=f"Invalid city: '{city}' not found.")
    except WeatherServiceError:
        raise HTTPException(status_code=502, detail="Could not verify city with weather service at this time.")
    except WeatherUnavailableError:
        raise HTTPException(status_code=503, detail="Failed to connect to weather service for city validation.")
    except WeatherPayloadError:
        raise HTTPException(
            status_code=400,
            detail=f"Could not verify city: '{city}'. Please ensure it's a known location.",
        )


async def subscribe(
    payload: SubscribeForm,
    db: Session,
    weather: WeatherClient,
    mx: MXChecker,
    mailer: Mailer,
    settings: Settings,
):
    await verify_city(weather, payload.city)

    try:
        await mx.verify_email_domain(payload.email)
    except EmailDomainError as e:
        raise HTTPException(status_code=400, detail=e.message)

    store = SubscriptionStore(db)

    if store.find_subscription_by_email(payload.email):
        raise HTTPException(status_code=409, detail="Email already subscribed")

    try:
        subscription = store.create_subscription(payload.email, payload.city, payload.frequency)
    except IntegrityError:
        # Lost the race against a concurrent request for the same email
        store.rollback()
        logger.warning(f"⚠️ Duplicate subscription insert for {payload.email}")
        raise HTTPException(status_code=409, detail="Email already subscribed")
    except Exception:
        store.rollback()
        logger.exception("❌ Error creating subscription")
        raise HTTPException(status_code=500, detail="Could not process subscription due to a server error.")

    try:
        token = store.create_confirmation_token(subscription.id)
        store.commit()
    except Exception:
        store.rollback()
        logger.exception(f"❌ Error creating confirmation token for {payload.email}")
        raise HTTPException(status_code=500, detail="Could not process subscription due to a server error.")

    logger.info(f"✨ Created subscription {subscription.id} for {payload.email} ({payload.city}, {payload.frequency.value})")

    message_id = await send_confirmation_email(
        mailer,
        to_email=payload.email,
        city=payload.city,
        confirmation_link=build_link(settings, "confirm", token.token),
    )
    if not message_id:
        logger.error(
            f"❌ Failed to send confirmation email to {payload.email}, "
            f"but subscription created (ID: {subscription.id})."
        )

    return {"message": "Subscription successful. Confirmation email sent."}


# === Confirm ===
async def confirm(token_value: str, db: Session, mailer: Mailer, settings: Settings):
    store = SubscriptionStore(db)

    try:
        token = store.find_token(token_value)
        if not token:
            raise HTTPException(status_code=404, detail="Token not found or already used")

        if token.type != TokenType.confirmation:
            raise HTTPException(status_code=400, detail="Invalid token type")

        if token.is_expired():
            store.delete_token(token.id)
            store.commit()
            raise HTTPException(status_code=400, detail="Token expired")

        subscription = store.get_subscription(token.subscription_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Associated subscription not found")

        if subscription.confirmed:
            store.delete_token(token.id)
            store.commit()
            return {"message": "Subscription already confirmed"}

        store.mark_confirmed(subscription)
        store.delete_token(token.id)
        unsubscribe_token = store.create_unsubscribe_token(subscription.id)
        store.commit()
    except HTTPException:
        raise
    except Exception:
        store.rollback()
        logger.exception("❌ Error during subscription confirmation")
        raise HTTPException(status_code=500, detail="Server error during confirmation process")

    logger.info(f"✅ Subscription {subscription.id} confirmed")

    message_id = await send_subscription_confirmed_email(
        mailer,
        to_email=subscription.email,
        city=subscription.city,
        frequency=subscription.frequency.value,
        unsubscribe_link=build_link(settings, "unsubscribe", unsubscribe_token.token),
    )
    if not message_id:
        logger.error(f"❌ Failed to send unsubscribe link to {subscription.email} (ID: {subscription.id}).")

    return {"message": "Subscription confirmed successfully"}


# === Unsubscribe ===
async def unsubscribe(token_value: str, db: Session):
    store = SubscriptionStore(db)

    try:
        token = store.find_token(token_value)
        if not token:
            raise HTTPException(status_code=404, detail="Token not found")

        if token.type != TokenType.unsubscribe:
            raise HTTPException(status_code=400, detail="Invalid token type for unsubscribe operation")

        subscription_id = token.subscription_id
        if not store.get_subscription(subscription_id):
            store.delete_token(token.id)
            store.commit()
            return {"message": "Subscription already removed or not found"}

        store.delete_subscription(subscription_id)
        store.delete_token(token.id)
        store.commit()
    except HTTPException:
        raise
    except Exception:
        store.rollback()
        logger.exception("❌ Error during unsubscribe process")
        raise HTTPException(status_code=500, detail="Server error during unsubscribe process")

    logger.info(f"🗑️ Subscription {subscription_id} removed")
    return {"message": "Unsubscribed successfully"}
