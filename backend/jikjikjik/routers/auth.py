"""Login proxy.

  POST /login  validate credentials locally, then forward to the backend API
"""

import logging

from fastapi import APIRouter, Depends

from jikjikjik.auth.credentials import DEFAULT_DEVICE_TOKEN
from jikjikjik.auth.login import validate_login_form
from jikjikjik.clients.backend import BackendClient
from jikjikjik.deps import get_backend_client
from jikjikjik.schemas.auth import LoginRequest, LoginResult

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResult, response_model_by_alias=True)
async def login(
    body: LoginRequest,
    client: BackendClient = Depends(get_backend_client),
):
    login_id = body.login_id_or_phone.strip()
    password = body.password.strip()
    validate_login_form(login_id, password)

    tokens = await client.login(
        login_id, password, device_token=body.device_token or DEFAULT_DEVICE_TOKEN
    )
    return LoginResult(
        member_id=tokens.member_id,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        role=tokens.role,
        message=tokens.message,
    )
