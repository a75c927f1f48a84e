"""Signup wizard over HTTP: one server-side wizard per session id.

Endpoints (all under /api/signup):
  POST   /sessions                                → open a wizard
  GET    /sessions/{id}                           → current progress
  DELETE /sessions/{id}                           → discard the wizard
  PATCH  /sessions/{id}/fields                    → save form input
  POST   /sessions/{id}/steps/next                → validate + advance
  POST   /sessions/{id}/steps/prev                → go back one step
  POST   /sessions/{id}/reset                     → start over
  POST   /sessions/{id}/verification/code         → duplicate check + SMS
  POST   /sessions/{id}/verification/resend       → same, after cool-down
  POST   /sessions/{id}/verification/confirm      → check the 6-digit code
  POST   /sessions/{id}/experiences               → add a trade experience
  DELETE /sessions/{id}/experiences/{entry_id}    → remove (needs ?confirmed=true)
  POST   /sessions/{id}/submit                    → worker join

Successful events return the progress snapshot plus UI effects. A rejected
event renders as the standard error envelope with its effects alongside.
"""

import dataclasses
import logging
from typing import Union

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from jikjikjik.deps import get_session_store
from jikjikjik.middleware.exceptions import application_error_response
from jikjikjik.schemas.signup import (
    CodeConfirm,
    EffectOut,
    ExperienceCreate,
    PhoneRequest,
    SignupFieldsUpdate,
    SignupOutcome,
    SignupProgress,
)
from jikjikjik.signup.store import SignupSessionStore
from jikjikjik.signup.wizard import (
    AddExperience,
    Advance,
    ConfirmCode,
    Event,
    RemoveExperience,
    RequestCode,
    ResendCode,
    Reset,
    Retreat,
    SetFields,
    SignupWizard,
    Submit,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def _dispatch(wizard: SignupWizard, event: Event) -> Union[SignupOutcome, JSONResponse]:
    outcome = await wizard.handle(event)
    effects = [EffectOut(**dataclasses.asdict(e)) for e in outcome.effects]
    if outcome.error is not None:
        # Effects are drained from the wizard on every event, rejected ones included
        return application_error_response(
            outcome.error,
            extra={"effects": [e.model_dump() for e in effects]},
        )
    return SignupOutcome(progress=outcome.state, effects=effects)


def _wizard(session_id: str, store: SignupSessionStore) -> SignupWizard:
    return store.get(session_id)


# ── Session lifecycle ────────────────────────────────────────

@router.post("/sessions", response_model=SignupOutcome, status_code=status.HTTP_201_CREATED)
async def open_session(store: SignupSessionStore = Depends(get_session_store)):
    wizard = store.create()
    return SignupOutcome(
        progress=wizard.snapshot(),
        effects=[EffectOut(**dataclasses.asdict(e)) for e in wizard.initial_controls()],
    )


@router.get("/sessions/{session_id}", response_model=SignupProgress)
async def get_session(
    session_id: str,
    store: SignupSessionStore = Depends(get_session_store),
):
    return _wizard(session_id, store).snapshot()


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    store: SignupSessionStore = Depends(get_session_store),
):
    store.discard(session_id)


# ── Form fields & steps ──────────────────────────────────────

@router.patch("/sessions/{session_id}/fields", response_model=SignupOutcome)
async def update_fields(
    session_id: str,
    body: SignupFieldsUpdate,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(_wizard(session_id, store), SetFields(body.to_fields()))


@router.post("/sessions/{session_id}/steps/next", response_model=SignupOutcome)
async def next_step(
    session_id: str,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(_wizard(session_id, store), Advance())


@router.post("/sessions/{session_id}/steps/prev", response_model=SignupOutcome)
async def previous_step(
    session_id: str,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(_wizard(session_id, store), Retreat())


@router.post("/sessions/{session_id}/reset", response_model=SignupOutcome)
async def reset_session(
    session_id: str,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(_wizard(session_id, store), Reset())


# ── Phone verification ───────────────────────────────────────

@router.post("/sessions/{session_id}/verification/code", response_model=SignupOutcome)
async def request_code(
    session_id: str,
    body: PhoneRequest,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(_wizard(session_id, store), RequestCode(body.phone))


@router.post("/sessions/{session_id}/verification/resend", response_model=SignupOutcome)
async def resend_code(
    session_id: str,
    body: PhoneRequest | None = None,
    store: SignupSessionStore = Depends(get_session_store),
):
    phone = body.phone if body else None
    return await _dispatch(_wizard(session_id, store), ResendCode(phone))


@router.post("/sessions/{session_id}/verification/confirm", response_model=SignupOutcome)
async def confirm_code(
    session_id: str,
    body: CodeConfirm,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(_wizard(session_id, store), ConfirmCode(body.code))


# ── Experience ───────────────────────────────────────────────

@router.post("/sessions/{session_id}/experiences", response_model=SignupOutcome)
async def add_experience(
    session_id: str,
    body: ExperienceCreate,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(
        _wizard(session_id, store), AddExperience(body.skill, body.years)
    )


@router.delete("/sessions/{session_id}/experiences/{entry_id}", response_model=SignupOutcome)
async def remove_experience(
    session_id: str,
    entry_id: int,
    confirmed: bool = Query(False),
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(
        _wizard(session_id, store), RemoveExperience(entry_id, confirmed)
    )


# ── Submission ───────────────────────────────────────────────

@router.post("/sessions/{session_id}/submit", response_model=SignupOutcome)
async def submit(
    session_id: str,
    store: SignupSessionStore = Depends(get_session_store),
):
    return await _dispatch(_wizard(session_id, store), Submit())
