"""FastAPI dependencies for objects created once per app in the lifespan."""

from fastapi import Request

from jikjikjik.clients.backend import BackendClient
from jikjikjik.signup.store import SignupSessionStore


def get_backend_client(request: Request) -> BackendClient:
    return request.app.state.backend_client


def get_session_store(request: Request) -> SignupSessionStore:
    return request.app.state.signup_sessions
