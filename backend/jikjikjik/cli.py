"""Command line entry points.

Usage:
    python -m jikjikjik.cli serve     # Run the web server (uvicorn)
    python -m jikjikjik.cli login     # Log in to the backend, store tokens
    python -m jikjikjik.cli logout    # Clear stored tokens
    python -m jikjikjik.cli status    # Show login state
"""

import asyncio
import getpass
import sys

import uvicorn

from jikjikjik import messages
from jikjikjik.auth.credentials import CredentialStore
from jikjikjik.auth.login import LoginFlow
from jikjikjik.clients.backend import BackendClient
from jikjikjik.config import settings
from jikjikjik.logging_config import configure_logging
from jikjikjik.middleware.exceptions import JikjikjikException


def serve():
    configure_logging()
    uvicorn.run(
        "jikjikjik.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug and settings.environment == "development",
        log_config=None,
    )


async def _login(login_id: str, password: str) -> int:
    store = CredentialStore(settings.credentials_file)
    async with BackendClient() as client:
        flow = LoginFlow(client, store)
        try:
            tokens = await flow.login(login_id, password)
        except JikjikjikException as e:
            print(f"  FAILED: {e.message}")
            return 1
    print(f"  {tokens.message} (member {tokens.member_id}, {tokens.role})")
    return 0


def login() -> int:
    login_id = input("아이디 또는 전화번호: ").strip()
    password = getpass.getpass("비밀번호: ")
    return asyncio.run(_login(login_id, password))


def logout() -> int:
    CredentialStore(settings.credentials_file).clear_login()
    print(f"  {messages.LOGOUT_SUCCESS}")
    return 0


def status() -> int:
    store = CredentialStore(settings.credentials_file)
    if store.is_logged_in:
        print(f"  Logged in: member {store.get('memberId')} ({store.get('role')})")
    else:
        print("  Not logged in")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    cmd = args[0] if args else ""
    if cmd == "serve":
        serve()
        return 0
    if cmd == "login":
        return login()
    if cmd == "logout":
        return logout()
    if cmd == "status":
        return status()
    print("Usage: python -m jikjikjik.cli [serve|login|logout|status]")
    return 2


if __name__ == "__main__":
    sys.exit(main())
