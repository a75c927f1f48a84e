"""Async client for the external jikjikjik backend API.

Every call is a single attempt bounded by the configured timeout. A call
either returns a typed result or raises one of the errors defined in
``jikjikjik.middleware.exceptions``:

  POST /join/validation-phone   duplicate check     -> PhoneAvailability
  POST /join/sms-verification   SMS code dispatch   -> SmsDispatch
  POST /join/worker/join        worker registration -> ApiResponse
  POST /login                   login               -> LoginTokens

Error bodies follow the backend convention:

    {"data": {"status": "CONFLICT", "code": "MEMBER-005",
              "errorMessage": "이미 등록된 핸드폰 번호입니다."},
     "message": "커스텀 예외 반환"}
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from jikjikjik import messages
from jikjikjik.config import settings
from jikjikjik.logging_config import mask_phone
from jikjikjik.middleware.exceptions import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ConnectivityError,
    ProtocolError,
    TransientServiceError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:8080"

# Placeholder multipart parts the join endpoint expects (uploads not supported yet)
JOIN_FILE_PARTS = ("educationCertificateImage", "workerCardImage", "signatureImage")


# ── Results ─────────────────────────────────────────────────

@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    data: Any
    message: str | None


@dataclass(frozen=True)
class PhoneAvailability:
    phone: str
    message: str


@dataclass(frozen=True)
class SmsDispatch:
    phone: str
    auth_code: str
    message: str


@dataclass(frozen=True)
class LoginTokens:
    member_id: str
    access_token: str
    refresh_token: str
    role: str
    message: str


@dataclass(frozen=True)
class FailureMessages:
    """Fallback user-facing messages for one endpoint."""
    conflict: str
    bad_request: str
    default: str


PHONE_CHECK_FAILURES = FailureMessages(
    conflict=messages.PHONE_DUPLICATE,
    bad_request=messages.PHONE_BAD_REQUEST,
    default=messages.GENERIC_SERVER_ERROR,
)
SMS_FAILURES = FailureMessages(
    conflict=messages.PHONE_DUPLICATE,
    bad_request=messages.PHONE_BAD_REQUEST,
    default=messages.SMS_FAILED,
)
JOIN_FAILURES = FailureMessages(
    conflict=messages.SIGNUP_CONFLICT,
    bad_request=messages.SIGNUP_BAD_REQUEST,
    default=messages.SIGNUP_FAILED,
)


# ── Base URL resolution ─────────────────────────────────────

class ApiConfig:
    """Backend base URL plus endpoint paths.

    The base URL is resolved once at construction: an explicitly injected
    value wins, then an ``API_BASE_URL`` entry of an injected environment
    mapping, then the built-in default. ``load_config_from_server`` can later
    replace it with the value served by ``GET /api/config``.
    """

    PHONE_VALIDATION_ENDPOINT = "/join/validation-phone"
    SMS_VERIFICATION_ENDPOINT = "/join/sms-verification"
    WORKER_JOIN_ENDPOINT = "/join/worker/join"
    LOGIN_ENDPOINT = "/login"
    CONFIG_ENDPOINT = "/api/config"

    def __init__(
        self,
        base_url: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        self.base_url = self.resolve_base_url(base_url, env)

    @staticmethod
    def resolve_base_url(
        base_url: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> str:
        if base_url:
            logger.debug("API URL from injected value: %s", base_url)
            return base_url.rstrip("/")
        if env and env.get("API_BASE_URL"):
            logger.debug("API URL from injected environment: %s", env["API_BASE_URL"])
            return env["API_BASE_URL"].rstrip("/")
        logger.debug("API URL: using default %s", DEFAULT_API_BASE_URL)
        return DEFAULT_API_BASE_URL

    def set_base_url(self, url: str) -> None:
        self.base_url = url.rstrip("/")
        logger.info("Backend base URL updated: %s", self.base_url)

    def url_for(self, endpoint: str) -> str:
        return self.base_url + endpoint

    async def load_config_from_server(
        self,
        http: httpx.AsyncClient,
        server_url: str = "",
    ) -> dict | None:
        """Fetch runtime config from the front server and adopt its base URL.

        Failures are logged and leave the current base URL in place.
        """
        url = server_url.rstrip("/") + self.CONFIG_ENDPOINT
        try:
            response = await http.get(url)
        except httpx.HTTPError as e:
            logger.warning("Runtime config unavailable from %s: %s", url, e)
            return None

        if not response.is_success:
            logger.warning(
                "Runtime config request failed: %s %s",
                response.status_code,
                response.reason_phrase,
            )
            return None

        try:
            config = response.json()
        except ValueError:
            logger.warning("Runtime config from %s is not JSON", url)
            return None

        new_url = config.get("API_BASE_URL") if isinstance(config, dict) else None
        if new_url and new_url.rstrip("/") != self.base_url:
            logger.info("API URL update: %s -> %s", self.base_url, new_url)
            self.set_base_url(new_url)
        return config


# ── Client ──────────────────────────────────────────────────

def _error_payload(body: dict) -> dict:
    data = body.get("data")
    return data if isinstance(data, dict) else {}


def raise_for_failure(
    status_code: int,
    body: dict,
    failures: FailureMessages,
) -> None:
    """Translate a non-2xx backend response into a typed error."""
    data = _error_payload(body)

    if data.get("status") == "CONFLICT":
        raise ConflictError(
            data.get("errorMessage") or failures.conflict,
            code=data.get("code"),
        )

    if status_code == 400:
        raise BadRequestError(failures.bad_request, upstream_status=status_code)
    if status_code == 429:
        raise TransientServiceError(messages.TOO_MANY_REQUESTS, upstream_status=status_code)
    if status_code == 500:
        raise TransientServiceError(messages.INTERNAL_SERVER_ERROR, upstream_status=status_code)

    message = data.get("errorMessage") or failures.default
    if status_code >= 500:
        raise TransientServiceError(message, upstream_status=status_code)
    raise BadRequestError(message, upstream_status=status_code)


class BackendClient:
    """Thin async wrapper around the backend's join and login endpoints."""

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or ApiConfig(base_url=settings.api_base_url)
        self._http = httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.backend_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(self, method: str, endpoint: str, **kwargs) -> tuple[httpx.Response, dict]:
        url = self.config.url_for(endpoint)
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning("Backend unreachable: %s %s (%s)", method, url, type(e).__name__)
            raise ConnectivityError(messages.NETWORK_ERROR) from e

        try:
            body = response.json()
        except ValueError as e:
            logger.warning(
                "Backend returned non-JSON body: %s %s status=%s",
                method,
                url,
                response.status_code,
            )
            raise ProtocolError(messages.UNREADABLE_RESPONSE) from e

        if not isinstance(body, dict):
            raise ProtocolError(messages.MALFORMED_RESPONSE)
        return response, body

    async def check_phone_duplicate(self, phone: str) -> PhoneAvailability:
        """Raise ConflictError if ``phone`` (digits only) is already registered."""
        response, body = await self._send(
            "POST", ApiConfig.PHONE_VALIDATION_ENDPOINT, json={"phone": phone}
        )
        logger.info(
            "Phone duplicate check: phone=%s status=%s",
            mask_phone(phone),
            response.status_code,
        )
        if not response.is_success:
            raise_for_failure(response.status_code, body, PHONE_CHECK_FAILURES)
        return PhoneAvailability(
            phone=phone,
            message=body.get("message") or messages.PHONE_AVAILABLE,
        )

    async def send_sms_code(self, phone: str) -> SmsDispatch:
        """Ask the backend to text a 6-digit code to ``phone``."""
        response, body = await self._send(
            "POST", ApiConfig.SMS_VERIFICATION_ENDPOINT, json={"phone": phone}
        )
        logger.info(
            "SMS dispatch: phone=%s status=%s",
            mask_phone(phone),
            response.status_code,
        )
        if not response.is_success:
            raise_for_failure(response.status_code, body, SMS_FAILURES)

        auth_code = _error_payload(body).get("authCode")
        if not auth_code:
            raise ProtocolError(messages.MALFORMED_RESPONSE)
        return SmsDispatch(
            phone=phone,
            auth_code=str(auth_code),
            message=body.get("message") or messages.CODE_SENT,
        )

    async def join_worker(self, payload: dict) -> ApiResponse:
        """Register a worker: multipart with the JSON ``request`` part and empty file parts."""
        files: list[tuple[str, tuple[None, str, str]]] = [
            ("request", (None, json.dumps(payload, ensure_ascii=False), "application/json")),
        ]
        files.extend((name, (None, "", "text/plain")) for name in JOIN_FILE_PARTS)

        response, body = await self._send(
            "POST", ApiConfig.WORKER_JOIN_ENDPOINT, files=files
        )
        logger.info(
            "Worker join: phone=%s status=%s",
            mask_phone(payload.get("phone") or ""),
            response.status_code,
        )
        if not response.is_success:
            raise_for_failure(response.status_code, body, JOIN_FAILURES)
        return ApiResponse(
            status_code=response.status_code,
            data=body.get("data"),
            message=body.get("message") or messages.SIGNUP_COMPLETE,
        )

    async def login(
        self,
        login_id_or_phone: str,
        password: str,
        device_token: str,
    ) -> LoginTokens:
        try:
            response, body = await self._send(
                "POST",
                ApiConfig.LOGIN_ENDPOINT,
                json={
                    "loginIdOrPhone": login_id_or_phone,
                    "password": password,
                    "deviceToken": device_token,
                },
            )
        except ConnectivityError as e:
            raise ConnectivityError(messages.LOGIN_CONNECTION_FAILED) from e

        data = body.get("data")
        if not response.is_success or not isinstance(data, dict):
            logger.info("Login rejected: status=%s", response.status_code)
            if response.status_code == 429 or response.status_code >= 500:
                raise TransientServiceError(
                    body.get("message") or messages.LOGIN_FAILED,
                    upstream_status=response.status_code,
                )
            raise AuthenticationError(body.get("message") or messages.LOGIN_FAILED)

        try:
            return LoginTokens(
                member_id=str(data["memberId"]),
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
                role=data["role"],
                message=body.get("message") or messages.LOGIN_SUCCESS,
            )
        except KeyError as e:
            raise ProtocolError(messages.MALFORMED_RESPONSE) from e
