"""Assemble the worker-join payload and send it to the backend.

The payload goes out as one multipart request: the JSON body under the
``request`` part plus empty placeholder parts for the image uploads the
backend expects.
"""

import logging
import re
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from jikjikjik import messages
from jikjikjik.clients.backend import ApiResponse, BackendClient
from jikjikjik.logging_config import mask_phone
from jikjikjik.middleware.exceptions import ValidationError
from jikjikjik.signup.experience import ExperienceEntry, SkillKey

logger = logging.getLogger(__name__)


class TechCode(str, Enum):
    """Trade vocabulary of the backend's ``workExperienceRequest.tech``."""
    NORMAL = "NORMAL"
    FOREMAN = "FOREMAN"
    SKILLED_LABORER = "SKILLED_LABORER"
    HELPER = "HELPER"
    SCAFFOLDER = "SCAFFOLDER"
    FORMWORK_CARPENTER = "FORMWORK_CARPENTER"
    REBAR_WORKER = "REBAR_WORKER"
    STEEL_STRUCTURE = "STEEL_STRUCTURE"
    WELDER = "WELDER"
    CONCRETE_WORKER = "CONCRETE_WORKER"
    BRICKLAYER = "BRICKLAYER"
    DRYWALL_FINISHER = "DRYWALL_FINISHER"
    CONSTRUCTION_CARPENTER = "CONSTRUCTION_CARPENTER"
    WINDOW_DOOR_INSTALLER = "WINDOW_DOOR_INSTALLER"
    GLAZIER = "GLAZIER"
    WATERPROOFING_WORKER = "WATERPROOFING_WORKER"
    PLASTERER = "PLASTERER"
    TILE = "TILE"
    PAINTER = "PAINTER"
    INTERIOR_FINISHER = "INTERIOR_FINISHER"
    WALLPAPER_INSTALLER = "WALLPAPER_INSTALLER"
    POLISHER = "POLISHER"
    STONEMASON = "STONEMASON"
    GROUT_WORKER = "GROUT_WORKER"
    PANEL_ASSEMBLER = "PANEL_ASSEMBLER"
    ROOFER = "ROOFER"
    LANDSCAPER = "LANDSCAPER"
    CAULKER = "CAULKER"
    PLUMBER = "PLUMBER"
    BOILER_TECHNICIAN = "BOILER_TECHNICIAN"
    SANITARY_TECHNICIAN = "SANITARY_TECHNICIAN"
    DUCT_INSTALLER = "DUCT_INSTALLER"
    INSULATION_WORKER = "INSULATION_WORKER"
    MECHANICAL_EQUIPMENT_TECHNICIAN = "MECHANICAL_EQUIPMENT_TECHNICIAN"
    ELECTRICIAN = "ELECTRICIAN"
    TELECOMMUNICATIONS_INSTALLER = "TELECOMMUNICATIONS_INSTALLER"
    TELECOMMUNICATIONS_EQUIPMENT_INSTALLER = "TELECOMMUNICATIONS_EQUIPMENT_INSTALLER"


SKILL_TECH_CODES: dict[SkillKey, TechCode] = {
    SkillKey.CONCRETE: TechCode.CONCRETE_WORKER,
    SkillKey.REBAR: TechCode.REBAR_WORKER,
    SkillKey.CARPENTER: TechCode.CONSTRUCTION_CARPENTER,
    SkillKey.ELECTRIC: TechCode.ELECTRICIAN,
    SkillKey.PLUMBER: TechCode.PLUMBER,
    SkillKey.TILE: TechCode.TILE,
    SkillKey.PAINTER: TechCode.PAINTER,
    SkillKey.GENERAL: TechCode.NORMAL,
}

_unmapped = set(SkillKey) - set(SKILL_TECH_CODES)
if _unmapped:
    raise RuntimeError(f"Skills without a tech code: {sorted(s.value for s in _unmapped)}")

# Korean trade names as used on the backend's own forms
TRADE_LABEL_CODES: dict[str, TechCode] = {
    "보통인부": TechCode.NORMAL,
    "작업반장": TechCode.FOREMAN,
    "특별인부": TechCode.SKILLED_LABORER,
    "조력공": TechCode.HELPER,
    "비계공": TechCode.SCAFFOLDER,
    "형틀목공": TechCode.FORMWORK_CARPENTER,
    "철근공": TechCode.REBAR_WORKER,
    "철골공": TechCode.STEEL_STRUCTURE,
    "용접공": TechCode.WELDER,
    "콘크리트공": TechCode.CONCRETE_WORKER,
    "조적공": TechCode.BRICKLAYER,
    "견출공": TechCode.DRYWALL_FINISHER,
    "건축목공": TechCode.CONSTRUCTION_CARPENTER,
    "창호공": TechCode.WINDOW_DOOR_INSTALLER,
    "유리공": TechCode.GLAZIER,
    "방수공": TechCode.WATERPROOFING_WORKER,
    "미장공": TechCode.PLASTERER,
    "타일공": TechCode.TILE,
    "도장공": TechCode.PAINTER,
    "내장공": TechCode.INTERIOR_FINISHER,
    "도배공": TechCode.WALLPAPER_INSTALLER,
    "연마공": TechCode.POLISHER,
    "석공": TechCode.STONEMASON,
    "줄눈공": TechCode.GROUT_WORKER,
    "판넬조립공": TechCode.PANEL_ASSEMBLER,
    "지붕잇기공": TechCode.ROOFER,
    "조경공": TechCode.LANDSCAPER,
    "코킹공": TechCode.CAULKER,
    "배관공": TechCode.PLUMBER,
    "보일러공": TechCode.BOILER_TECHNICIAN,
    "위생공": TechCode.SANITARY_TECHNICIAN,
    "덕트공": TechCode.DUCT_INSTALLER,
    "보온공": TechCode.INSULATION_WORKER,
    "기계설비공": TechCode.MECHANICAL_EQUIPMENT_TECHNICIAN,
    "내선전공": TechCode.ELECTRICIAN,
    "통신내선공": TechCode.TELECOMMUNICATIONS_INSTALLER,
    "통신설비공": TechCode.TELECOMMUNICATIONS_EQUIPMENT_INSTALLER,
}


def tech_code_for(trade: str | SkillKey) -> TechCode:
    """Map a skill key or Korean trade name onto the backend's tech code.

    Unknown trades are rejected rather than passed through.
    """
    if isinstance(trade, SkillKey):
        return SKILL_TECH_CODES[trade]
    if trade in TRADE_LABEL_CODES:
        return TRADE_LABEL_CODES[trade]
    try:
        return SKILL_TECH_CODES[SkillKey(trade)]
    except ValueError:
        raise ValidationError(messages.UNKNOWN_TRADE, field="skill") from None


# ── Payload ─────────────────────────────────────────────────

class WireModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
    }


class WorkExperience(WireModel):
    tech: TechCode
    experience_months: int


# Sample values the form falls back to while fields are still optional
DEVELOPMENT_DEFAULTS: dict[str, Any] = {
    "worker_name": "홍길동",
    "birth": "19750101",
    "gender": "MALE",
    "nationality": "KOREAN",
    "bank": "국민은행",
    "account": "12341234123412",
    "address": "부산광역시 사하구 낙동대로 550번길 37",
    "latitude": 35.116777388697734,
    "longitude": 128.9685393114043,
}

FALLBACK_EXPERIENCE = WorkExperience(tech=TechCode.NORMAL, experience_months=24)

ROLE_WORKER = "ROLE_WORKER"
WEB_DEVICE_TOKEN = "token"


class SignupPayload(WireModel):
    login_id: str
    password: str
    phone: str
    email: str
    role: str = ROLE_WORKER
    privacy_consent: bool
    device_token: str = WEB_DEVICE_TOKEN
    is_notification: bool = True
    worker_name: str
    birth: str
    gender: str
    nationality: str
    account_holder: str
    account: str
    bank: str
    worker_card_number: Optional[str] = None
    credential_liability_consent: bool = True
    work_experience_request: tuple[WorkExperience, ...]
    address: str
    latitude: float
    longitude: float

    def to_request(self) -> dict:
        """JSON-ready dict with the backend's camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


def _text(fields: Mapping[str, Any], name: str) -> str:
    value = fields.get(name)
    return str(value).strip() if value is not None else ""


class SignupSubmitter:
    """Builds ``SignupPayload`` from wizard input and posts it to the join endpoint.

    Does not guard against double submission; callers serialize submits.
    """

    def __init__(self, client: BackendClient):
        self.client = client

    def collect(
        self,
        fields: Mapping[str, Any],
        experiences: Iterable[ExperienceEntry],
        phone: Optional[str] = None,
    ) -> SignupPayload:
        """Read the wizard fields, experience entries and verified phone into a payload.

        ``phone`` is the verified session's number; the raw form value is
        used when no session exists.
        """
        digits = re.sub(r"\D", "", phone or _text(fields, "phoneNumber"))

        worker_name = _text(fields, "workerName") or DEVELOPMENT_DEFAULTS["worker_name"]
        birth = re.sub(r"\D", "", _text(fields, "birthDate")) or DEVELOPMENT_DEFAULTS["birth"]

        work_experience = tuple(
            WorkExperience(
                tech=SKILL_TECH_CODES[entry.skill],
                experience_months=entry.experience_months,
            )
            for entry in experiences
        )
        if not work_experience:
            work_experience = (FALLBACK_EXPERIENCE,)

        return SignupPayload(
            login_id=digits,
            password=fields.get("password") or "",
            phone=digits,
            email=_text(fields, "email"),
            privacy_consent=bool(fields.get("terms")),
            worker_name=worker_name,
            birth=birth,
            gender=(_text(fields, "gender") or DEVELOPMENT_DEFAULTS["gender"]).upper(),
            nationality=(
                _text(fields, "nationality") or DEVELOPMENT_DEFAULTS["nationality"]
            ).upper(),
            account_holder=_text(fields, "accountHolder") or worker_name,
            account=_text(fields, "accountNumber") or DEVELOPMENT_DEFAULTS["account"],
            bank=_text(fields, "bankName") or DEVELOPMENT_DEFAULTS["bank"],
            work_experience_request=work_experience,
            address=_text(fields, "address") or DEVELOPMENT_DEFAULTS["address"],
            latitude=DEVELOPMENT_DEFAULTS["latitude"],
            longitude=DEVELOPMENT_DEFAULTS["longitude"],
        )

    async def submit(self, payload: SignupPayload, verified: bool) -> ApiResponse:
        """Send one join request. Fails locally, without a request, when
        the phone is unverified or a required field is empty."""
        if not verified:
            raise ValidationError(messages.VERIFY_PHONE_FIRST, field="phoneNumber")
        if not payload.phone or not payload.email or not payload.password:
            raise ValidationError(messages.SIGNUP_MISSING_FIELDS)

        logger.info(
            "Submitting worker join: phone=%s experiences=%d",
            mask_phone(payload.phone),
            len(payload.work_experience_request),
        )
        return await self.client.join_worker(payload.to_request())
