"""Pydantic schemas for the signup wizard endpoints.

Field updates are partial: every field is optional so the client can PATCH
whatever it has. Wire names are the form's camelCase input names.
"""

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


# ── Progress snapshot ───────────────────────────────────────

class VerificationProgress(BaseModel):
    state: str
    phone: str | None = None
    verified: bool = False
    time_left: str | None = None
    remaining_seconds: int | None = None
    resend_enabled: bool = False
    message: str | None = None


class ExperienceRow(BaseModel):
    id: int
    skill: str
    skill_name: str
    years: int
    years_text: str


class SignupProgress(BaseModel):
    session_id: str
    current_step: int
    total_steps: int
    step_title: str
    indicators: list[str]
    verification: VerificationProgress
    experiences: list[ExperienceRow] = []
    fields: dict = {}
    busy: bool = False
    submitted: bool = False


class EffectOut(BaseModel):
    """One UI instruction produced by a wizard event."""
    type: str
    message: str | None = None
    level: str | None = None
    control: str | None = None
    enabled: bool | None = None
    label: str | None = None
    page: str | None = None


class SignupOutcome(BaseModel):
    progress: SignupProgress
    effects: list[EffectOut] = []


# ── Requests ────────────────────────────────────────────────

class SignupFieldsUpdate(BaseModel):
    phone_number: str | None = None
    worker_name: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    nationality: str | None = None
    address: str | None = None
    address_detail: str | None = None
    skills: list[str] | None = None
    bank_name: str | None = None
    account_number: str | None = None
    account_holder: str | None = None
    introduction: str | None = Field(default=None, max_length=500)
    email: str | None = None
    password: str | None = None
    password_confirm: str | None = None
    terms: bool | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def to_fields(self) -> dict:
        """Only the fields the client actually sent, under their form names."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class PhoneRequest(BaseModel):
    phone: str | None = None


class CodeConfirm(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class ExperienceCreate(BaseModel):
    # Left optional so an empty dialog gets the wizard's own message
    skill: str | None = None
    years: int | None = None
