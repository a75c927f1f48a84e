"""Console logging setup shared by the server and the CLI."""

import logging

from jikjikjik.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    # Already configured (uvicorn reload, repeated CLI calls)
    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(handler)


def mask_phone(phone: str) -> str:
    """Mask the middle of a phone number for logs: 01012345678 -> 010****5678."""
    digits = phone.replace("-", "")
    if len(digits) <= 7:
        return "****"
    return f"{digits[:3]}****{digits[-4:]}"
