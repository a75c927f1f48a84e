"""Login against the backend and keep the resulting tokens."""

import logging
import re

from jikjikjik import messages
from jikjikjik.auth.credentials import CredentialStore
from jikjikjik.clients.backend import BackendClient, LoginTokens
from jikjikjik.middleware.exceptions import ValidationError
from jikjikjik.signup.steps import MIN_PASSWORD_LENGTH

logger = logging.getLogger(__name__)

LOGIN_ID_REGEX = re.compile(r"^[a-zA-Z0-9]{4,20}$")
LOGIN_PHONE_REGEX = re.compile(r"^010-?\d{4}-?\d{4}$")


def validate_login_id_or_phone(value: str) -> bool:
    """Accept an alphanumeric login id (4-20) or a 010 mobile number."""
    return bool(LOGIN_ID_REGEX.match(value) or LOGIN_PHONE_REGEX.match(value))


def validate_login_form(login_id_or_phone: str, password: str) -> None:
    if not login_id_or_phone:
        raise ValidationError(messages.LOGIN_ID_REQUIRED, field="loginIdOrPhone")
    if not validate_login_id_or_phone(login_id_or_phone):
        raise ValidationError(messages.LOGIN_ID_FORMAT, field="loginIdOrPhone")
    if not password:
        raise ValidationError(messages.PASSWORD_REQUIRED, field="password")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(messages.PASSWORD_LENGTH, field="password")


class LoginFlow:

    def __init__(self, client: BackendClient, store: CredentialStore):
        self.client = client
        self.store = store

    @property
    def is_logged_in(self) -> bool:
        return self.store.is_logged_in

    async def login(self, login_id_or_phone: str, password: str) -> LoginTokens:
        """Validate locally, call the backend, then store the token group.

        Nothing is stored when the backend refuses the credentials.
        """
        login_id_or_phone = (login_id_or_phone or "").strip()
        password = (password or "").strip()
        validate_login_form(login_id_or_phone, password)

        tokens = await self.client.login(
            login_id_or_phone, password, device_token=self.store.device_token
        )
        self.store.save_login(tokens)
        logger.info("Logged in: member=%s role=%s", tokens.member_id, tokens.role)
        return tokens

    def logout(self) -> None:
        self.store.clear_login()
        logger.info("Logged out")
