"""Phone ownership check: duplicate check → SMS dispatch → countdown → code entry.

States:
  IDLE → CHECKING_DUPLICATE → CODE_SENT → VERIFIED
  any state → FAILED (duplicate phone, backend error, expired window)

FAILED is re-enterable: calling ``request_code`` again starts over.

The issued code is compared locally against the value the backend returned
with the dispatch call. The countdown runs as an asyncio task ticking once a
second; at most one countdown is alive per flow.
"""

import asyncio
import logging
import re
import time
from enum import Enum
from typing import Callable, Optional

from jikjikjik import messages
from jikjikjik.clients.backend import BackendClient, SmsDispatch
from jikjikjik.config import settings
from jikjikjik.logging_config import mask_phone
from jikjikjik.middleware.exceptions import (
    JikjikjikException,
    RequestInProgressError,
    ValidationError,
)
from jikjikjik.signup.state import VerificationSession

logger = logging.getLogger(__name__)

PHONE_REGEX = re.compile(r"^010-\d{4}-\d{4}$")
CODE_LENGTH = 6


class VerificationState(str, Enum):
    IDLE = "idle"
    CHECKING_DUPLICATE = "checking_duplicate"
    CODE_SENT = "code_sent"
    VERIFIED = "verified"
    FAILED = "failed"


def normalize_phone(phone: str) -> str:
    """Strip separators: 010-1234-5678 -> 01012345678."""
    return re.sub(r"\D", "", phone or "")


def format_phone(value: str) -> str:
    """Progressively hyphenate typed digits: 0101234 -> 010-1234."""
    digits = normalize_phone(value)
    if 3 <= len(digits) <= 7:
        return re.sub(r"^(\d{3})(\d{1,4})", r"\1-\2", digits)
    if len(digits) >= 8:
        return re.sub(r"^(\d{3})(\d{4})(\d{1,4})", r"\1-\2-\3", digits)
    return digits


class Countdown:
    """Recurring 1 Hz callback backed by an asyncio task.

    ``on_tick`` returns False to stop. Starting a countdown cancels the
    previous one first.
    """

    def __init__(self, on_tick: Callable[[], bool], interval: float = 1.0):
        self._on_tick = on_tick
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self._on_tick():
                break

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A tick that ends the countdown returns on its own
        if task is not current:
            task.cancel()


class PhoneVerificationFlow:
    """State machine gating wizard step 1 on a confirmed SMS code."""

    def __init__(
        self,
        client: BackendClient,
        *,
        window_seconds: Optional[int] = None,
        resend_cooldown_seconds: Optional[int] = None,
        tick_interval: Optional[float] = 1.0,
        clock: Callable[[], float] = time.monotonic,
        on_expire: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.window_seconds = (
            window_seconds if window_seconds is not None
            else settings.verification_window_seconds
        )
        self.resend_cooldown_seconds = (
            resend_cooldown_seconds if resend_cooldown_seconds is not None
            else settings.resend_cooldown_seconds
        )
        self.clock = clock
        self.on_expire = on_expire

        self.state = VerificationState.IDLE
        self.session: Optional[VerificationSession] = None
        self.last_message: Optional[str] = None
        self._last_sent_at: Optional[float] = None

        # tick_interval=None: ticks are driven by the caller through tick()
        self._countdown = Countdown(self.tick, tick_interval) if tick_interval else None

    # ── Read-only views ─────────────────────────────────────

    @property
    def verified(self) -> bool:
        return (
            self.state == VerificationState.VERIFIED
            and self.session is not None
            and self.session.verified
        )

    @property
    def phone(self) -> Optional[str]:
        return self.session.phone if self.session else None

    @property
    def remaining_seconds(self) -> Optional[int]:
        return self.session.remaining_seconds if self.session else None

    @property
    def time_left(self) -> Optional[str]:
        return self.session.time_left if self.session else None

    @property
    def countdown_running(self) -> bool:
        return self._countdown is not None and self._countdown.running

    @property
    def resend_enabled(self) -> bool:
        if self._last_sent_at is None:
            return False
        if self.state in (VerificationState.CHECKING_DUPLICATE, VerificationState.VERIFIED):
            return False
        return self.clock() - self._last_sent_at >= self.resend_cooldown_seconds

    # ── Transitions ─────────────────────────────────────────

    async def request_code(self, phone: str) -> SmsDispatch:
        """Validate ``phone``, check it is unused, and have a code texted to it.

        Raises ValidationError without touching the network when the format
        is wrong. Backend failures move the flow to FAILED and propagate.
        """
        phone = (phone or "").strip()
        if not PHONE_REGEX.match(phone):
            raise ValidationError(messages.PHONE_FORMAT, field="phone")
        return await self._dispatch(phone, resend=False)

    async def resend(self, phone: Optional[str] = None) -> SmsDispatch:
        """Re-run the duplicate check and dispatch, replacing the issued code.

        Only available once the cool-down since the previous send has passed.
        """
        if phone is None:
            phone = format_phone(self.session.phone) if self.session else ""
        phone = phone.strip()
        if not PHONE_REGEX.match(phone):
            raise ValidationError(messages.PHONE_FORMAT, field="phone")
        if not self.resend_enabled:
            raise ValidationError(messages.RESEND_NOT_READY, field="phone")
        return await self._dispatch(phone, resend=True)

    async def _dispatch(self, phone: str, resend: bool) -> SmsDispatch:
        if self.state == VerificationState.CHECKING_DUPLICATE:
            raise RequestInProgressError(messages.REQUEST_IN_PROGRESS)

        digits = normalize_phone(phone)
        self._stop_countdown()
        self.session = None
        self.state = VerificationState.CHECKING_DUPLICATE
        self.last_message = (
            messages.RECHECKING_DUPLICATE if resend else messages.CHECKING_DUPLICATE
        )

        try:
            await self.client.check_phone_duplicate(digits)
            self.last_message = messages.RESENDING_CODE if resend else messages.SENDING_CODE
            dispatch = await self.client.send_sms_code(digits)
        except JikjikjikException as e:
            logger.info(
                "Verification failed: phone=%s error=%s",
                mask_phone(digits),
                e.error_code,
            )
            self._fail(e.message)
            raise
        except Exception:
            logger.exception("Unexpected error during verification dispatch")
            self._fail(messages.GENERIC_SERVER_ERROR)
            raise

        self.session = VerificationSession(
            phone=digits,
            issued_code=dispatch.auth_code,
            remaining_seconds=self.window_seconds,
            sent_at=self.clock(),
        )
        self._last_sent_at = self.session.sent_at
        self.state = VerificationState.CODE_SENT
        self.last_message = messages.CODE_RESENT if resend else messages.CODE_SENT
        if self._countdown is not None:
            self._countdown.start()

        logger.info(
            "Verification code %s: phone=%s window=%ss",
            "resent" if resend else "sent",
            mask_phone(digits),
            self.window_seconds,
        )
        return dispatch

    def confirm_code(self, code: str) -> bool:
        """Accept ``code`` iff it equals the issued code within the window.

        A wrong code raises ValidationError and leaves the session untouched;
        the user may try again while time remains.
        """
        code = (code or "").strip()
        if len(code) != CODE_LENGTH:
            raise ValidationError(messages.CODE_LENGTH, field="code")

        if self.verified:
            return True

        session = self.session
        if session is not None and session.expired:
            raise ValidationError(messages.CODE_EXPIRED, field="code")
        if (
            self.state != VerificationState.CODE_SENT
            or session is None
            or session.issued_code is None
            or code != session.issued_code
        ):
            raise ValidationError(messages.CODE_MISMATCH, field="code")

        session.verified = True
        self.state = VerificationState.VERIFIED
        self.last_message = messages.PHONE_VERIFIED
        self._stop_countdown()
        logger.info("Phone verified: phone=%s", mask_phone(session.phone))
        return True

    def tick(self) -> bool:
        """Advance the countdown by one second. Returns False once it should stop."""
        session = self.session
        if self.state != VerificationState.CODE_SENT or session is None:
            return False

        session.remaining_seconds -= 1
        if session.expired:
            self._expire()
            return False
        return True

    def reset(self) -> None:
        self._stop_countdown()
        self.session = None
        self.state = VerificationState.IDLE
        self.last_message = None
        self._last_sent_at = None

    # ── Internals ───────────────────────────────────────────

    def _expire(self) -> None:
        session = self.session
        if session is not None:
            session.invalidate()
        self._stop_countdown()
        self.state = VerificationState.FAILED
        self.last_message = messages.CODE_EXPIRED
        logger.info(
            "Verification window expired: phone=%s",
            mask_phone(session.phone) if session else "-",
        )
        if self.on_expire is not None:
            self.on_expire(messages.CODE_EXPIRED)

    def _fail(self, message: str) -> None:
        self._stop_countdown()
        if self.session is not None:
            self.session.invalidate()
        self.state = VerificationState.FAILED
        self.last_message = message

    def _stop_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
