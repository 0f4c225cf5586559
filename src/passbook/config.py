"""Runtime configuration: where the database lives."""

from __future__ import annotations

import os
import sys
from pathlib import Path

DB_ENV_VAR = "PASSBOOK_DB"
DB_FILENAME = "pass.db"


def get_db_path() -> Path:
    """Database file from ``$PASSBOOK_DB``, else the per-user data directory."""
    env = os.environ.get(DB_ENV_VAR)
    if env:
        return Path(env)
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / "passbook" / DB_FILENAME
