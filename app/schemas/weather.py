from pydantic import BaseModel


class WeatherResponse(BaseModel):
    temperature: float
    humidity: int
    description: str
