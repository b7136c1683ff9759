from __future__ import annotations

import hmac
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DB_URL = "sqlite+aiosqlite:///issue_history.db"


def load_dotenv(path: Path) -> int:
    """
    Copy ``KEY=value`` lines from a .env file into ``os.environ``.

    Variables already present in the environment win over the file, so a
    deployment can always override ``SECRET``, ``GITHUB_TOKEN`` or the
    database URL. ``export`` prefixes, ``#`` comments and matching quotes
    around values are accepted. Returns the number of variables set.
    """
    if not path.exists():
        return 0
    loaded = 0
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key or key in os.environ:
            continue
        if (len(value) >= 2) and ((value[0] == value[-1]) and value[0] in {"'", '"'}):
            value = value[1:-1]
        os.environ[key] = value
        loaded += 1
    return loaded


@dataclass(frozen=True)
class Settings:
    """Process configuration, built once and passed explicitly to callers."""

    secret: Optional[str] = None
    github_token: Optional[str] = None
    db_url: str = DEFAULT_DB_URL
    github_api_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            secret=env.get("SECRET") or None,
            github_token=env.get("GITHUB_TOKEN") or None,
            db_url=env.get("DB_CONN_STRING") or env.get("DATABASE_URL") or DEFAULT_DB_URL,
            github_api_url=env.get("GITHUB_API_URL") or None,
        )

    def check_secret(self, candidate: Optional[str]) -> bool:
        """True when `candidate` equals the configured secret; False if none is set."""
        if not self.secret or candidate is None:
            return False
        return hmac.compare_digest(self.secret.encode(), candidate.encode())
