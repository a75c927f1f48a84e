"""Schemas for the small utility endpoints."""

from pydantic import BaseModel, Field


class EchoRequest(BaseModel):
    message: str = Field(min_length=1)
    count: int = Field(default=1, ge=1, le=10)


class EchoResponse(BaseModel):
    repeated: list[str]


class TimeResponse(BaseModel):
    now: str


class RuntimeConfig(BaseModel):
    """Served to the front end so it knows where the backend API lives."""
    API_BASE_URL: str
