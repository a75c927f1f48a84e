"""Utility endpoints: server time, echo, runtime config for the front end."""

from datetime import datetime, timezone

from fastapi import APIRouter

from jikjikjik.config import settings
from jikjikjik.schemas.api import EchoRequest, EchoResponse, RuntimeConfig, TimeResponse

router = APIRouter()


@router.get("/time", response_model=TimeResponse)
async def server_time():
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return TimeResponse(now=now.replace("+00:00", "Z"))


@router.post("/echo", response_model=EchoResponse)
async def echo(body: EchoRequest):
    return EchoResponse(repeated=[body.message] * body.count)


@router.get("/config", response_model=RuntimeConfig)
async def runtime_config():
    return RuntimeConfig(API_BASE_URL=settings.api_base_url)
