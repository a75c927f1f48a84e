"""Schemas for the login proxy."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class LoginRequest(BaseModel):
    login_id_or_phone: str = ""
    password: str = ""
    device_token: str | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class LoginResult(BaseModel):
    member_id: str
    access_token: str
    refresh_token: str
    role: str
    message: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}
