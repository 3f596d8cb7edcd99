"""
Environment-driven database configuration for the vehicle catalog.
"""

from __future__ import annotations

import os
from pathlib import Path

ENV_FILENAMES = (".env", ".env.local")
DATABASE_URL_VARS = ("DATABASE_URL", "LOCAL_DATABASE_URL")


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from `.env` then `.env.local` under the project root.

    Variables already present in the process environment win over file values.
    """

    root = project_root or Path(__file__).resolve().parents[1]
    for filename in ENV_FILENAMES:
        env_path = root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key:
                os.environ.setdefault(key, value)


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite bare postgres URLs to the psycopg 3 driver form SQLAlchemy expects.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def database_configured() -> bool:
    """True when any catalog database URL variable is set."""
    load_env_files()
    return any(os.getenv(name, "").strip() for name in DATABASE_URL_VARS)


def resolve_database_url() -> str:
    """
    Resolve the catalog database URL.

    DATABASE_URL takes priority; LOCAL_DATABASE_URL is the developer fallback.
    """

    load_env_files()
    for name in DATABASE_URL_VARS:
        value = os.getenv(name, "").strip()
        if value:
            return normalize_postgres_url(value)

    raise RuntimeError(
        "No catalog database configured. Set DATABASE_URL (or LOCAL_DATABASE_URL for development)."
    )
