"""Linear step progression for the seven-step signup form.

Steps:
  1  phone verification    gated on a verified phone
  2  personal information  name, birth date, gender, nationality
  3  address
  4  skills                at least one trade selected
  5  bank account          digits-only account number, holder name
  6  self-introduction     optional
  7  account               e-mail, password (8+), confirmation, terms
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, MutableMapping

from jikjikjik import messages
from jikjikjik.middleware.exceptions import ValidationError
from jikjikjik.signup.state import ACTIVE, COMPLETED, WizardState

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
ACCOUNT_NUMBER_REGEX = re.compile(r"^\d+$")
MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class StepDefinition:
    number: int
    title: str
    required_fields: tuple[str, ...] = ()


STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(1, "휴대폰 인증", ("phoneNumber",)),
    StepDefinition(2, "기본 정보", ("workerName", "birthDate", "gender")),
    StepDefinition(3, "주소", ("address",)),
    StepDefinition(4, "보유 기술"),
    StepDefinition(5, "계좌 정보", ("bankName", "accountNumber", "accountHolder")),
    StepDefinition(6, "자기소개"),
    StepDefinition(7, "계정 설정", ("email", "password", "passwordConfirm")),
)
TOTAL_STEPS = len(STEPS)


def is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    return True


def validate_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email or ""))


class FormStepController:
    """Moves the wizard between steps, validating before each advance.

    Owns no network calls. Field values live in the mapping shared with
    the wizard session; the verification gate is read through
    ``is_verified``.
    """

    def __init__(
        self,
        state: WizardState,
        fields: MutableMapping[str, Any],
        is_verified: Callable[[], bool],
        steps: tuple[StepDefinition, ...] = STEPS,
    ):
        self.state = state
        self.fields = fields
        self.is_verified = is_verified
        self.steps = steps

    @property
    def current_step(self) -> int:
        return self.state.current_step

    @property
    def current_definition(self) -> StepDefinition:
        return self.steps[self.state.current_step - 1]

    def advance(self) -> int:
        """Validate the current step and move forward one step.

        Raises ValidationError (and changes nothing) when the step is
        incomplete. On the last step a valid advance is a no-op.
        """
        self.validate_step(self.state.current_step)

        step = self.state.current_step
        if step < len(self.steps):
            self.state.indicators[step - 1] = COMPLETED
            self.state.indicators[step] = ACTIVE
            self.state.current_step = step + 1
            logger.debug("Wizard advanced: %d -> %d", step, step + 1)
        return self.state.current_step

    def retreat(self) -> int:
        step = self.state.current_step
        if step > 1:
            self.state.indicators[step - 1] = ""
            self.state.indicators[step - 2] = ACTIVE
            self.state.current_step = step - 1
        return self.state.current_step

    def reset(self) -> None:
        self.state.reset()
        self.fields.clear()

    def validate_step(self, step: int) -> None:
        # The verification gate comes before anything else on step 1
        if step == 1 and not self.is_verified():
            raise ValidationError(messages.VERIFY_PHONE_FIRST, field="phoneNumber")

        definition = self.steps[step - 1]
        for name in definition.required_fields:
            if not is_filled(self.fields.get(name)):
                raise ValidationError(messages.REQUIRED_FIELDS, field=name)

        if step == 2 and not is_filled(self.fields.get("nationality")):
            raise ValidationError(messages.SELECT_NATIONALITY, field="nationality")

        if step == 4 and not is_filled(self.fields.get("skills")):
            raise ValidationError(messages.SELECT_SKILL, field="skills")

        if step == 5:
            if not ACCOUNT_NUMBER_REGEX.match(str(self.fields.get("accountNumber", ""))):
                raise ValidationError(messages.ACCOUNT_DIGITS_ONLY, field="accountNumber")
            if len(str(self.fields.get("accountHolder", "")).strip()) < 2:
                raise ValidationError(messages.ACCOUNT_HOLDER, field="accountHolder")

        if step == 7:
            self._validate_account()

    def _validate_account(self) -> None:
        password = self.fields.get("password") or ""

        if not validate_email(self.fields.get("email") or ""):
            raise ValidationError(messages.EMAIL_FORMAT, field="email")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(messages.PASSWORD_LENGTH, field="password")
        if password != (self.fields.get("passwordConfirm") or ""):
            raise ValidationError(messages.PASSWORD_MISMATCH, field="passwordConfirm")
        if not self.fields.get("terms"):
            raise ValidationError(messages.ACCEPT_TERMS, field="terms")
