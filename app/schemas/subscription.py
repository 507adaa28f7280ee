from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.subscription import Frequency

# 32 random bytes, hex encoded
TOKEN_PATTERN = r"^[0-9a-fA-F]{64}$"


class SubscribeForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    city: str = Field(..., min_length=1, max_length=100, description="City name cannot be empty")
    frequency: Frequency


class MessageResponse(BaseModel):
    message: str
