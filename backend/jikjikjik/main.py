import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from jikjikjik.config import settings
from jikjikjik.middleware.exceptions import register_exception_handlers
from jikjikjik.middleware.rate_limit import RateLimitMiddleware
from jikjikjik.middleware.security import SecurityHeadersMiddleware
from jikjikjik.routers import api, auth, health, signup
from jikjikjik.services.lifespan import lifespan

logger = logging.getLogger(__name__)

app = FastAPI(
    title="jikjikjik",
    description="Construction worker job platform: web front end and signup API",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (last added runs outermost) ───────────────────
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    RateLimitMiddleware,
    default_limit=settings.rate_limit_per_minute,
    default_window=60,
    exempt_paths=["/healthz", "/readyz"],
    enabled=settings.rate_limit_enabled,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(api.router, prefix="/api", tags=["api"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(signup.router, prefix="/api/signup", tags=["signup"])

# ── Static front end (last, so API routes win) ───────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def resolve_static_dir(value: str) -> Path:
    """Relative paths are taken from the project root, not the working directory."""
    path = Path(value).expanduser()
    return path if path.is_absolute() else PROJECT_ROOT / path


_static_dir = resolve_static_dir(settings.static_dir)
if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory=_static_dir, html=True), name="static")
else:
    logger.warning("Static front end not found at %s; serving the API only", _static_dir)
