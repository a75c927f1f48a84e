"""PhoneVerificationFlow tests: duplicate check, dispatch, countdown, code entry."""

import asyncio
import json

import httpx
import pytest

from jikjikjik import messages
from jikjikjik.clients.backend import ApiConfig
from jikjikjik.middleware.exceptions import (
    BadRequestError,
    ConflictError,
    ConnectivityError,
    ProtocolError,
    RequestInProgressError,
    TransientServiceError,
    ValidationError,
)
from jikjikjik.signup.verification import (
    Countdown,
    PhoneVerificationFlow,
    VerificationState,
    format_phone,
)

from conftest import AUTH_CODE

PHONE = "010-1234-5678"


@pytest.fixture
def make_flow(backend_client, clock):
    flows = []

    def _make(**kwargs):
        options = {
            "window_seconds": 180,
            "resend_cooldown_seconds": 30,
            "tick_interval": None,
            "clock": clock,
        }
        options.update(kwargs)
        flow = PhoneVerificationFlow(backend_client, **options)
        flows.append(flow)
        return flow

    yield _make

    for flow in flows:
        flow.reset()


@pytest.fixture
def flow(make_flow):
    return make_flow()


@pytest.mark.unit
@pytest.mark.asyncio
class TestRequestCode:

    @pytest.mark.parametrize("phone", [
        "01012345678",
        "010-123-5678",
        "010-1234-567",
        "011-1234-5678",
        "010 1234 5678",
        "",
    ])
    async def test_bad_format_never_hits_network(self, flow, fake_backend, phone):
        with pytest.raises(ValidationError) as exc:
            await flow.request_code(phone)

        assert exc.value.message == messages.PHONE_FORMAT
        assert fake_backend.requests == []
        assert flow.state == VerificationState.IDLE

    async def test_happy_path(self, flow, fake_backend):
        dispatch = await flow.request_code(PHONE)

        assert dispatch.auth_code == AUTH_CODE
        assert flow.state == VerificationState.CODE_SENT
        assert flow.session.issued_code == AUTH_CODE
        assert flow.session.phone == "01012345678"
        assert flow.time_left == "03:00"
        assert not flow.verified

        # Duplicate check first, then dispatch, both with digits only
        paths = [r.url.path for r in fake_backend.requests]
        assert paths == [
            ApiConfig.PHONE_VALIDATION_ENDPOINT,
            ApiConfig.SMS_VERIFICATION_ENDPOINT,
        ]
        assert json.loads(fake_backend.requests[0].content) == {"phone": "01012345678"}

    async def test_duplicate_phone(self, flow, fake_backend):
        fake_backend.respond(ApiConfig.PHONE_VALIDATION_ENDPOINT, 409, {
            "data": {
                "status": "CONFLICT",
                "code": "MEMBER-005",
                "errorMessage": "이미 등록된 핸드폰 번호입니다.",
            },
            "message": "커스텀 예외 반환",
        })

        with pytest.raises(ConflictError) as exc:
            await flow.request_code(PHONE)

        assert exc.value.message == "이미 등록된 핸드폰 번호입니다."
        assert exc.value.error_code == "MEMBER-005"
        assert flow.state == VerificationState.FAILED
        assert flow.last_message == "이미 등록된 핸드폰 번호입니다."
        assert fake_backend.calls(ApiConfig.SMS_VERIFICATION_ENDPOINT) == []

    async def test_failed_is_reenterable(self, flow, fake_backend):
        fake_backend.fail(ApiConfig.PHONE_VALIDATION_ENDPOINT)
        with pytest.raises(ConnectivityError):
            await flow.request_code(PHONE)
        assert flow.state == VerificationState.FAILED

        fake_backend.reset_routes()
        await flow.request_code(PHONE)
        assert flow.state == VerificationState.CODE_SENT

    @pytest.mark.parametrize("status, error, message", [
        (400, BadRequestError, messages.PHONE_BAD_REQUEST),
        (429, TransientServiceError, messages.TOO_MANY_REQUESTS),
        (500, TransientServiceError, messages.INTERNAL_SERVER_ERROR),
    ])
    async def test_dispatch_status_mapping(self, flow, fake_backend, status, error, message):
        fake_backend.respond(ApiConfig.SMS_VERIFICATION_ENDPOINT, status, {"data": None})

        with pytest.raises(error) as exc:
            await flow.request_code(PHONE)

        assert exc.value.message == message
        assert flow.state == VerificationState.FAILED
        assert flow.session is None

    async def test_unparseable_dispatch_response(self, flow, fake_backend):
        fake_backend.respond_raw(ApiConfig.SMS_VERIFICATION_ENDPOINT, 200, "<html>oops</html>")

        with pytest.raises(ProtocolError) as exc:
            await flow.request_code(PHONE)

        assert exc.value.message == messages.UNREADABLE_RESPONSE
        assert flow.state == VerificationState.FAILED

    async def test_concurrent_request_refused(self, flow, fake_backend):
        gate = asyncio.Event()

        async def slow_check(request):
            await gate.wait()
            return httpx.Response(200, json={"data": None, "message": "ok"})

        fake_backend._routes[ApiConfig.PHONE_VALIDATION_ENDPOINT] = slow_check

        first = asyncio.create_task(flow.request_code(PHONE))
        await asyncio.sleep(0)
        assert flow.state == VerificationState.CHECKING_DUPLICATE

        with pytest.raises(RequestInProgressError):
            await flow.request_code(PHONE)

        gate.set()
        await first
        assert flow.state == VerificationState.CODE_SENT


@pytest.mark.unit
@pytest.mark.asyncio
class TestConfirmCode:

    async def test_correct_code_verifies(self, flow):
        await flow.request_code(PHONE)
        assert flow.confirm_code(AUTH_CODE) is True
        assert flow.verified
        assert flow.state == VerificationState.VERIFIED
        assert flow.last_message == messages.PHONE_VERIFIED

    async def test_wrong_code_changes_nothing(self, flow):
        await flow.request_code(PHONE)
        flow.tick()
        remaining = flow.remaining_seconds

        with pytest.raises(ValidationError) as exc:
            flow.confirm_code("123456")

        assert exc.value.message == messages.CODE_MISMATCH
        assert not flow.verified
        assert flow.state == VerificationState.CODE_SENT
        assert flow.remaining_seconds == remaining
        assert flow.session.issued_code == AUTH_CODE

        # Still allowed to try again
        assert flow.confirm_code(AUTH_CODE)

    @pytest.mark.parametrize("code", ["", "12345", "1234567"])
    async def test_code_length(self, flow, code):
        await flow.request_code(PHONE)
        with pytest.raises(ValidationError) as exc:
            flow.confirm_code(code)
        assert exc.value.message == messages.CODE_LENGTH

    async def test_confirm_without_session(self, flow):
        with pytest.raises(ValidationError) as exc:
            flow.confirm_code(AUTH_CODE)
        assert exc.value.message == messages.CODE_MISMATCH

    async def test_confirm_on_last_second(self, flow):
        await flow.request_code(PHONE)
        for _ in range(180):
            assert flow.tick()
        assert flow.remaining_seconds == 0
        assert flow.confirm_code(AUTH_CODE)


@pytest.mark.unit
@pytest.mark.asyncio
class TestExpiry:

    async def test_expiry_clears_code(self, make_flow):
        expired = []
        flow = make_flow(window_seconds=3, on_expire=expired.append)
        await flow.request_code(PHONE)

        assert flow.tick()
        assert flow.tick()
        assert flow.tick()
        assert flow.time_left == "00:00"
        assert flow.tick() is False

        assert flow.state == VerificationState.FAILED
        assert flow.session.issued_code is None
        assert not flow.verified
        assert flow.last_message == messages.CODE_EXPIRED
        assert expired == [messages.CODE_EXPIRED]

        with pytest.raises(ValidationError) as exc:
            flow.confirm_code(AUTH_CODE)
        assert exc.value.message == messages.CODE_EXPIRED

    async def test_expiry_is_idempotent(self, make_flow):
        expired = []
        flow = make_flow(window_seconds=0, on_expire=expired.append)
        await flow.request_code(PHONE)

        flow.tick()
        remaining = flow.remaining_seconds
        for _ in range(5):
            assert flow.tick() is False

        assert expired == [messages.CODE_EXPIRED]
        assert flow.remaining_seconds == remaining

    async def test_no_ticks_after_verification(self, flow):
        await flow.request_code(PHONE)
        flow.confirm_code(AUTH_CODE)
        remaining = flow.remaining_seconds
        assert flow.tick() is False
        assert flow.remaining_seconds == remaining


@pytest.mark.unit
@pytest.mark.asyncio
class TestResend:

    async def test_resend_locked_during_cooldown(self, flow, fake_backend, clock):
        await flow.request_code(PHONE)
        clock.advance(29)
        assert not flow.resend_enabled

        with pytest.raises(ValidationError) as exc:
            await flow.resend(PHONE)

        assert exc.value.message == messages.RESEND_NOT_READY
        assert len(fake_backend.calls(ApiConfig.SMS_VERIFICATION_ENDPOINT)) == 1

    async def test_resend_replaces_code_and_restarts_window(self, flow, fake_backend, clock):
        await flow.request_code(PHONE)
        for _ in range(40):
            flow.tick()
        clock.advance(30)
        assert flow.resend_enabled

        fake_backend.respond(ApiConfig.SMS_VERIFICATION_ENDPOINT, 200, {
            "data": {"authCode": "777777"}, "message": "ok",
        })
        await flow.resend()

        assert flow.session.issued_code == "777777"
        assert flow.remaining_seconds == 180
        assert flow.last_message == messages.CODE_RESENT
        assert not flow.resend_enabled
        assert len(fake_backend.calls(ApiConfig.PHONE_VALIDATION_ENDPOINT)) == 2

        with pytest.raises(ValidationError):
            flow.confirm_code(AUTH_CODE)
        assert flow.confirm_code("777777")

    async def test_resend_after_expiry(self, make_flow, clock):
        flow = make_flow(window_seconds=1)
        await flow.request_code(PHONE)
        flow.tick()
        flow.tick()
        assert flow.state == VerificationState.FAILED

        clock.advance(30)
        await flow.resend()
        assert flow.state == VerificationState.CODE_SENT

    async def test_no_resend_once_verified(self, flow, clock):
        await flow.request_code(PHONE)
        flow.confirm_code(AUTH_CODE)
        clock.advance(60)
        assert not flow.resend_enabled


@pytest.mark.unit
@pytest.mark.asyncio
class TestCountdownTask:

    async def test_background_countdown_expires(self, make_flow):
        expired = asyncio.Event()
        flow = make_flow(
            window_seconds=2,
            tick_interval=0.01,
            on_expire=lambda message: expired.set(),
        )
        await flow.request_code(PHONE)
        assert flow.countdown_running

        await asyncio.wait_for(expired.wait(), timeout=2)
        await asyncio.sleep(0)

        assert flow.state == VerificationState.FAILED
        assert not flow.countdown_running

    async def test_restart_cancels_previous_countdown(self):
        ticks = []
        countdown = Countdown(lambda: ticks.append(1) or True, interval=0.01)

        countdown.start()
        first = countdown._task
        countdown.start()
        await asyncio.sleep(0)

        assert first.cancelled() or first.done()
        assert countdown.running
        countdown.cancel()
        assert not countdown.running

    async def test_success_stops_countdown(self, make_flow):
        flow = make_flow(tick_interval=0.01)
        await flow.request_code(PHONE)
        flow.confirm_code(AUTH_CODE)
        await asyncio.sleep(0)
        assert not flow.countdown_running


@pytest.mark.unit
@pytest.mark.parametrize("raw, formatted", [
    ("010", "010"),
    ("0101234", "010-1234"),
    ("01012345678", "010-1234-5678"),
    ("010-1234-5678", "010-1234-5678"),
])
def test_format_phone(raw, formatted):
    assert format_phone(raw) == formatted
