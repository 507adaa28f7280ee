import logging
import httpx
from pydantic import ValidationError

from app.schemas.weather import WeatherResponse

logger = logging.getLogger(__name__)

# WeatherAPI.com: "No matching location found."
LOCATION_NOT_FOUND = 1006


class WeatherError(Exception):
    pass


class WeatherConfigError(WeatherError):
    pass


class CityNotFoundError(WeatherError):
    def __init__(self, city: str):
        super().__init__(f"City not found: {city}")
        self.city = city


class WeatherServiceError(WeatherError):
    """The weather service answered with an error other than an unknown location."""

    def __init__(self, code: int | None, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class WeatherUnavailableError(WeatherError):
    pass


class WeatherPayloadError(WeatherError):
    pass


class WeatherClient:
    """
    Thin async client for the WeatherAPI.com `current.json` endpoint.

    The underlying httpx.AsyncClient is owned by the caller that built this
    object (the app lifespan) and released with `aclose()`.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "http://api.weatherapi.com/v1",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def fetch_current(self, city: str) -> dict:
        if not self.api_key:
            raise WeatherConfigError("WEATHER_API_KEY is not set")

        try:
            response = await self._client.get(
                f"{self.base_url}/current.json",
                params={"key": self.api_key, "q": city},
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Failed to reach weather service for city '{city}': {e}")
            raise WeatherUnavailableError(str(e)) from e

        if not isinstance(data, dict):
            raise WeatherUnavailableError("Weather service returned a non-object body")

        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            logger.warning(f"⚠️ WeatherAPI error for city '{city}': code={code} message={message}")
            if code == LOCATION_NOT_FOUND:
                raise CityNotFoundError(city)
            raise WeatherServiceError(code, message)

        return data

    async def get_current_weather(self, city: str) -> WeatherResponse:
        data = await self.fetch_current(city)

        location = data.get("location")
        current = data.get("current")
        if not location or not current:
            logger.error(f"Unexpected response structure from WeatherAPI for city '{city}': {data}")
            raise WeatherPayloadError("Response is missing location or current data")

        try:
            return WeatherResponse(
                temperature=current["temp_c"],
                humidity=current["humidity"],
                description=f"{current['condition']['text']} in {location['name']}",
            )
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Malformed current weather for city '{city}': {e}")
            raise WeatherPayloadError(str(e)) from e

    async def aclose(self):
        await self._client.aclose()
