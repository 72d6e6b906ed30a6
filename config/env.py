"""Environment loading and parsing for settings.

Files are read in order, never overriding variables already set in the
process:
- the file named by INCIDENT_ENV_FILE, if set
- .env
- .env.<DJANGO_ENV> (for example .env.dev or .env.test), if DJANGO_ENV is set
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

TRUE_VALUES = {"1", "true", "yes", "on"}


def env_files(base_dir: Path) -> list[Path]:
    """Candidate dotenv files for this process, in load order."""
    files = []
    explicit = os.environ.get("INCIDENT_ENV_FILE")
    if explicit:
        files.append(Path(explicit))
    files.append(base_dir / ".env")
    stage = os.environ.get("DJANGO_ENV", "").strip().lower()
    if stage:
        files.append(base_dir / f".env.{stage}")
    return files


def load_env(base_dir: Path | None = None) -> list[Path]:
    """Load the dotenv files that exist and return them."""
    if base_dir is None:
        base_dir = Path(__file__).resolve().parent.parent

    loaded = []
    for path in env_files(base_dir):
        if path.is_file():
            load_dotenv(path, override=False)
            loaded.append(path)
    return loaded


def env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


def env_list(name: str, default: list[str]) -> list[str]:
    """Comma-separated list; blank or unset gives the default."""
    value = os.environ.get(name)
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]
