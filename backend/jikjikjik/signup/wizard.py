"""Signup wizard session: one object per user going through the form.

The wizard is driven by events:

    outcome = await wizard.handle(RequestCode("010-1234-5678"))
    outcome.state     # SignupProgress snapshot after the event
    outcome.effects   # notifications / control changes / navigation

Every failing event yields exactly one error ``Notification`` and leaves
``outcome.error`` set; the triggering control is restored first. Governed
actions are serialized: while a backend call is in flight every other event
is refused with ``RequestInProgressError``.
"""

import asyncio
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from jikjikjik import messages
from jikjikjik.clients.backend import BackendClient
from jikjikjik.config import settings
from jikjikjik.middleware.exceptions import (
    JikjikjikException,
    RequestInProgressError,
    ValidationError,
)
from jikjikjik.schemas.signup import (
    ExperienceRow,
    SignupProgress,
    VerificationProgress,
)
from jikjikjik.signup.experience import ExperienceRegistry, parse_skill
from jikjikjik.signup.state import WizardState
from jikjikjik.signup.steps import STEPS, TOTAL_STEPS, FormStepController
from jikjikjik.signup.submitter import SignupSubmitter
from jikjikjik.signup.verification import PhoneVerificationFlow, format_phone

logger = logging.getLogger(__name__)

# Controls the wizard enables/disables
SEND_CODE = "send_code"
RESEND = "resend"
NEXT = "next"
SUBMIT = "submit"

INFO = "info"
SUCCESS = "success"
ERROR = "error"

LOGIN_PAGE = "login"

# Never echoed back in snapshots
SECRET_FIELDS = frozenset({"password", "passwordConfirm"})


# ── Events ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Advance:
    pass


@dataclass(frozen=True)
class Retreat:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class SetFields:
    values: Mapping[str, Any]


@dataclass(frozen=True)
class RequestCode:
    phone: Optional[str] = None


@dataclass(frozen=True)
class ResendCode:
    phone: Optional[str] = None


@dataclass(frozen=True)
class ConfirmCode:
    code: str


@dataclass(frozen=True)
class AddExperience:
    skill: Optional[str]
    years: Optional[int]


@dataclass(frozen=True)
class RemoveExperience:
    entry_id: int
    confirmed: bool = False


@dataclass(frozen=True)
class Submit:
    pass


Event = Union[
    Advance, Retreat, Reset, SetFields, RequestCode, ResendCode,
    ConfirmCode, AddExperience, RemoveExperience, Submit,
]


# ── Effects ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Notification:
    message: str
    level: str = INFO
    type: str = field(default="notification", init=False)


@dataclass(frozen=True)
class ControlChange:
    control: str
    enabled: bool
    label: Optional[str] = None
    type: str = field(default="control", init=False)


@dataclass(frozen=True)
class Navigate:
    page: str
    type: str = field(default="navigate", init=False)


Effect = Union[Notification, ControlChange, Navigate]


@dataclass(frozen=True)
class Outcome:
    state: SignupProgress
    effects: tuple[Effect, ...] = ()
    error: Optional[JikjikjikException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SignupWizard:
    """Owns the step state, verification flow, experience registry and form fields."""

    def __init__(
        self,
        client: BackendClient,
        *,
        window_seconds: Optional[int] = None,
        resend_cooldown_seconds: Optional[int] = None,
        tick_interval: Optional[float] = 1.0,
        clock: Callable[[], float] = time.monotonic,
        handoff_delay: Optional[float] = None,
    ):
        self.id = uuid.uuid4().hex
        self.fields: dict[str, Any] = {}
        self.state = WizardState(total_steps=TOTAL_STEPS)
        self.flow = PhoneVerificationFlow(
            client,
            window_seconds=window_seconds,
            resend_cooldown_seconds=resend_cooldown_seconds,
            tick_interval=tick_interval,
            clock=clock,
            on_expire=self._on_expire,
        )
        self.steps = FormStepController(
            self.state, self.fields, is_verified=lambda: self.flow.verified
        )
        self.experiences = ExperienceRegistry()
        self.submitter = SignupSubmitter(client)
        self.handoff_delay = (
            handoff_delay if handoff_delay is not None
            else settings.signup_handoff_delay_seconds
        )
        self.submitted = False

        self._busy = False
        self._pending: list[Effect] = []
        self._handoff: Optional[asyncio.TimerHandle] = None
        self._handlers = {
            Advance: self._on_advance,
            Retreat: self._on_retreat,
            Reset: self._on_reset,
            SetFields: self._on_set_fields,
            RequestCode: self._on_request_code,
            ResendCode: self._on_resend_code,
            ConfirmCode: self._on_confirm_code,
            AddExperience: self._on_add_experience,
            RemoveExperience: self._on_remove_experience,
            Submit: self._on_submit,
        }

    @property
    def busy(self) -> bool:
        return self._busy

    async def handle(self, event: Event) -> Outcome:
        """Apply ``event`` and report the new state plus the UI effects."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported wizard event: {event!r}")

        # Effects raised by the countdown since the last event come first
        effects, self._pending = self._pending, []

        if self._busy:
            error = RequestInProgressError(messages.REQUEST_IN_PROGRESS)
            effects.append(Notification(error.message, ERROR))
            return Outcome(self.snapshot(), tuple(effects), error)

        try:
            await handler(event, effects)
        except JikjikjikException as e:
            logger.info(
                "Wizard %s: %s rejected (%s)",
                self.id[:8],
                type(event).__name__,
                e.error_code,
            )
            effects.append(Notification(e.message, ERROR))
            return Outcome(self.snapshot(), tuple(effects), e)

        return Outcome(self.snapshot(), tuple(effects))

    def snapshot(self) -> SignupProgress:
        flow = self.flow
        return SignupProgress(
            session_id=self.id,
            current_step=self.state.current_step,
            total_steps=self.state.total_steps,
            step_title=STEPS[self.state.current_step - 1].title,
            indicators=list(self.state.indicators),
            verification=VerificationProgress(
                state=flow.state.value,
                phone=flow.phone,
                verified=flow.verified,
                time_left=flow.time_left,
                remaining_seconds=flow.remaining_seconds,
                resend_enabled=flow.resend_enabled,
                message=flow.last_message,
            ),
            experiences=[ExperienceRow(**row) for row in self.experiences.render()],
            fields={k: v for k, v in self.fields.items() if k not in SECRET_FIELDS},
            busy=self._busy,
            submitted=self.submitted,
        )

    def reset(self) -> None:
        """Back to step 1 with an empty form and no verification."""
        self._cancel_handoff()
        self.flow.reset()
        self.steps.reset()
        self.experiences.clear()
        self.submitted = False
        self._pending = []
        logger.debug("Wizard %s reset", self.id[:8])

    def close(self) -> None:
        """Stop background work (countdown, scheduled hand-off)."""
        self._cancel_handoff()
        self.flow.reset()

    # ── Handlers ────────────────────────────────────────────

    async def _on_advance(self, event: Advance, effects: list[Effect]) -> None:
        self.steps.advance()

    async def _on_retreat(self, event: Retreat, effects: list[Effect]) -> None:
        self.steps.retreat()

    async def _on_reset(self, event: Reset, effects: list[Effect]) -> None:
        self.reset()
        effects.extend(self.initial_controls())

    async def _on_set_fields(self, event: SetFields, effects: list[Effect]) -> None:
        values = dict(event.values)
        if values.get("phoneNumber") is not None:
            values["phoneNumber"] = format_phone(values["phoneNumber"])
        if values.get("skills") is not None:
            values["skills"] = [parse_skill(s).value for s in values["skills"]]
        self.fields.update(values)

    async def _on_request_code(self, event: RequestCode, effects: list[Effect]) -> None:
        phone = event.phone if event.phone is not None else self.fields.get("phoneNumber", "")
        self.fields["phoneNumber"] = phone
        effects.append(ControlChange(SEND_CODE, False, messages.LABEL_CHECKING))

        with self._in_flight():
            try:
                await self.flow.request_code(phone)
            except JikjikjikException:
                effects.append(ControlChange(SEND_CODE, True, messages.LABEL_SEND_CODE))
                effects.append(ControlChange(NEXT, False, messages.LABEL_NEXT_LOCKED))
                raise

        effects.append(Notification(self.flow.last_message, INFO))
        effects.append(ControlChange(SEND_CODE, False, messages.LABEL_CODE_SENT))
        effects.append(ControlChange(RESEND, False, messages.LABEL_RESEND))
        effects.append(ControlChange(NEXT, False, messages.LABEL_NEXT_LOCKED))

    async def _on_resend_code(self, event: ResendCode, effects: list[Effect]) -> None:
        effects.append(ControlChange(RESEND, False, messages.LABEL_CHECKING))

        with self._in_flight():
            try:
                await self.flow.resend(event.phone)
            except JikjikjikException:
                effects.append(
                    ControlChange(RESEND, self.flow.resend_enabled, messages.LABEL_RESEND)
                )
                raise

        effects.append(Notification(self.flow.last_message, INFO))
        effects.append(ControlChange(RESEND, False, messages.LABEL_RESEND))
        effects.append(ControlChange(NEXT, False, messages.LABEL_NEXT_LOCKED))

    async def _on_confirm_code(self, event: ConfirmCode, effects: list[Effect]) -> None:
        self.flow.confirm_code(event.code)
        effects.append(Notification(messages.PHONE_VERIFIED, SUCCESS))
        effects.append(ControlChange(NEXT, True, messages.LABEL_NEXT))

    async def _on_add_experience(self, event: AddExperience, effects: list[Effect]) -> None:
        entry = self.experiences.add(event.skill, event.years)

        # Adding experience for a trade implies having that skill
        skills = list(self.fields.get("skills") or [])
        if entry.skill.value not in skills:
            skills.append(entry.skill.value)
            self.fields["skills"] = skills

        effects.append(Notification(messages.EXPERIENCE_ADDED, SUCCESS))

    async def _on_remove_experience(
        self, event: RemoveExperience, effects: list[Effect]
    ) -> None:
        if self.experiences.get(event.entry_id) is None:
            return
        removed = self.experiences.remove(event.entry_id, lambda prompt: event.confirmed)
        if not removed:
            # Ask the user; the client repeats the event with confirmed=True
            effects.append(Notification(messages.EXPERIENCE_DELETE_PROMPT, INFO))

    async def _on_submit(self, event: Submit, effects: list[Effect]) -> None:
        if self.submitted:
            raise RequestInProgressError(messages.REQUEST_IN_PROGRESS)
        if not self.flow.verified:
            raise ValidationError(messages.VERIFY_PHONE_FIRST, field="phoneNumber")
        if self.state.current_step != self.state.total_steps:
            raise ValidationError(messages.SUBMIT_FROM_LAST_STEP, field="step")
        for step in range(1, self.state.total_steps + 1):
            self.steps.validate_step(step)

        payload = self.submitter.collect(
            self.fields, self.experiences.list(), phone=self.flow.phone
        )
        effects.append(Notification(messages.SIGNUP_PROCESSING, INFO))
        effects.append(ControlChange(SUBMIT, False, messages.LABEL_SUBMITTING))

        with self._in_flight():
            try:
                await self.submitter.submit(payload, verified=self.flow.verified)
            except JikjikjikException:
                effects.append(ControlChange(SUBMIT, True, messages.LABEL_SUBMIT))
                raise

        self.submitted = True
        effects.append(Notification(messages.SIGNUP_COMPLETE, SUCCESS))
        effects.append(Navigate(LOGIN_PAGE))
        self._schedule_handoff()

    # ── Internals ───────────────────────────────────────────

    @contextmanager
    def _in_flight(self):
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _on_expire(self, message: str) -> None:
        # Runs from the countdown task; surfaced with the next event
        self._pending.extend([
            Notification(message, ERROR),
            ControlChange(SEND_CODE, True, messages.LABEL_SEND_CODE),
            ControlChange(NEXT, False, messages.LABEL_NEXT_LOCKED),
        ])

    def _schedule_handoff(self) -> None:
        self._cancel_handoff()
        loop = asyncio.get_running_loop()
        self._handoff = loop.call_later(self.handoff_delay, self._complete_handoff)

    def _complete_handoff(self) -> None:
        self._handoff = None
        self.reset()
        logger.info("Wizard %s handed off to login", self.id[:8])

    def _cancel_handoff(self) -> None:
        if self._handoff is not None:
            self._handoff.cancel()
            self._handoff = None

    @staticmethod
    def initial_controls() -> list[Effect]:
        return [
            ControlChange(SEND_CODE, True, messages.LABEL_SEND_CODE),
            ControlChange(RESEND, False, messages.LABEL_RESEND),
            ControlChange(NEXT, False, messages.LABEL_NEXT_LOCKED),
            ControlChange(SUBMIT, True, messages.LABEL_SUBMIT),
        ]
