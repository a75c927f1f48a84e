"""App lifespan: shared backend client, signup session store, idle purge loop.

Usage:
    from jikjikjik.services.lifespan import lifespan
    app = FastAPI(lifespan=lifespan, ...)
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from jikjikjik.clients.backend import BackendClient
from jikjikjik.config import settings
from jikjikjik.signup.store import SignupSessionStore
from jikjikjik.signup.wizard import SignupWizard
from jikjikjik.utils.redis import close_redis

logger = logging.getLogger("jikjikjik.lifespan")

PURGE_INTERVAL_SECONDS = 60


async def _purge_loop(store: SignupSessionStore) -> None:
    """Drop idle signup sessions once a minute."""
    while True:
        await asyncio.sleep(PURGE_INTERVAL_SECONDS)
        try:
            store.purge_expired()
        except Exception:
            logger.exception("Signup session purge failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = BackendClient()
    store = SignupSessionStore(factory=lambda: SignupWizard(client))
    app.state.backend_client = client
    app.state.signup_sessions = store

    task = asyncio.create_task(_purge_loop(store))
    logger.info(
        "Started (environment=%s, backend=%s)",
        settings.environment,
        client.config.base_url,
    )
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        store.close_all()
        await client.aclose()
        await close_redis()
        logger.info("Stopped")
