"""Client-side login state: tokens plus the logged-in flag.

The five entries are written together on login and removed together on
logout. Only the ``isLoggedIn`` flag decides whether a user is logged in;
leftover tokens without the flag count as logged out.

Kept in memory; the CLI passes a path so the group survives between runs.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from jikjikjik.clients.backend import LoginTokens

logger = logging.getLogger(__name__)

CREDENTIAL_KEYS = ("memberId", "accessToken", "refreshToken", "role")
LOGGED_IN_KEY = "isLoggedIn"
DEVICE_TOKEN_KEY = "deviceToken"
DEFAULT_DEVICE_TOKEN = "web_device_token"


class CredentialStore:

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path).expanduser() if path else None
        self._values: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable credential file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed credential file %s", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename: the file always holds a whole group
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".credentials-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._values, f, ensure_ascii=False, indent=2)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    @property
    def is_logged_in(self) -> bool:
        return self._values.get(LOGGED_IN_KEY) == "true"

    @property
    def device_token(self) -> str:
        return self._values.get(DEVICE_TOKEN_KEY) or DEFAULT_DEVICE_TOKEN

    def save_login(self, tokens: LoginTokens) -> None:
        group = {
            "memberId": tokens.member_id,
            "accessToken": tokens.access_token,
            "refreshToken": tokens.refresh_token,
            "role": tokens.role,
            LOGGED_IN_KEY: "true",
        }
        self._values = {**self._values, **group}
        self._flush()

    def clear_login(self) -> None:
        for key in (*CREDENTIAL_KEYS, LOGGED_IN_KEY):
            self._values.pop(key, None)
        self._flush()

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)
