import logging
from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies.services import get_weather_client
from app.schemas.weather import WeatherResponse
from app.services.weather import (
    WeatherClient,
    WeatherConfigError,
    CityNotFoundError,
    WeatherServiceError,
    WeatherUnavailableError,
    WeatherPayloadError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/weather", response_model=WeatherResponse)
async def get_weather(
    city: str = Query(..., min_length=1, description="City name cannot be empty"),
    weather: WeatherClient = Depends(get_weather_client),
):
    try:
        return await weather.get_current_weather(city)
    except WeatherConfigError:
        logger.error("❌ WEATHER_API_KEY is not set.")
        raise HTTPException(status_code=500, detail="Server configuration error: API key missing")
    except CityNotFoundError:
        raise HTTPException(status_code=404, detail=f"City not found: {city}")
    except WeatherServiceError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid request to weather service", "detail": e.message},
        )
    except WeatherUnavailableError:
        raise HTTPException(status_code=503, detail="Failed to connect to weather service")
    except WeatherPayloadError:
        raise HTTPException(status_code=500, detail="Unexpected response from weather service")
