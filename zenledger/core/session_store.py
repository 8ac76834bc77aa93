"""Device-local session and onboarding state.

The current session and the per-user "onboarding seen" flags are kept as
small JSON files under ``<state_dir>/<namespace>/``.  The namespace carries
a schema version so a newer layout never reads an older one's files.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from zenledger.schemas.session import Session

logger = logging.getLogger(__name__)

_SESSION_FILE = "session.json"
_ONBOARDING_FILE = "onboarding.json"


def _state_dir() -> Path:
    """Return the directory that stores device-local ZenLedger state."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path.home() / ".config"
    return base / "ZenLedger"


class SessionStore:
    """Persist the current session and onboarding flags on this device.

    Parameters
    ----------
    state_dir:
        Base directory; defaults to :func:`_state_dir`.
    namespace:
        Versioned sub-directory, e.g. ``"v16"``.
    """

    def __init__(self, state_dir: Path | str | None = None, namespace: str = "v16") -> None:
        self._dir = Path(state_dir) if state_dir else _state_dir()
        self._dir = self._dir / namespace
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    # -- current session ------------------------------------------------------

    def save(self, session: Session) -> None:
        path = self._dir / _SESSION_FILE
        with open(path, "w", encoding="utf-8") as f:
            f.write(session.model_dump_json())

    def load(self) -> Session | None:
        """Return the stored session, or *None* if absent, unreadable or expired.

        An expired session is deleted on the spot.
        """
        path = self._dir / _SESSION_FILE
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                session = Session.model_validate_json(f.read())
        except (OSError, ValidationError):
            logger.warning("Unreadable session record at %s, discarding", path)
            self.clear()
            return None

        if session.is_expired:
            logger.info("Stored session for user %s expired, discarding", session.user_id)
            self.clear()
            return None
        return session

    def clear(self) -> None:
        (self._dir / _SESSION_FILE).unlink(missing_ok=True)

    # -- onboarding flags -----------------------------------------------------

    def _read_onboarding(self) -> dict[str, bool]:
        path = self._dir / _ONBOARDING_FILE
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.warning("Corrupt onboarding flags at %s, starting fresh", path)
            return {}
        return data if isinstance(data, dict) else {}

    def has_seen_onboarding(self, user_id: str) -> bool:
        return bool(self._read_onboarding().get(user_id))

    def mark_onboarding_seen(self, user_id: str) -> None:
        flags = self._read_onboarding()
        flags[user_id] = True
        with open(self._dir / _ONBOARDING_FILE, "w", encoding="utf-8") as f:
            json.dump(flags, f, indent=2)

    def forget_users(self, user_ids: set[str]) -> None:
        """Drop onboarding flags of users that no longer exist."""
        flags = self._read_onboarding()
        kept = {uid: seen for uid, seen in flags.items() if uid not in user_ids}
        if kept != flags:
            with open(self._dir / _ONBOARDING_FILE, "w", encoding="utf-8") as f:
                json.dump(kept, f, indent=2)
