"""
Project root, `.env` and project-relative paths.

The boundary file (`data/boundaries/...`) and an optional `.env` live next to
`pyproject.toml`. The root is the first directory, walking up from the working
directory and then from this module, that holds both `pyproject.toml` and
`src/eegshare`.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


def find_project_root(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / "pyproject.toml").is_file() and (candidate / "src" / "eegshare").is_dir():
            return candidate
    return None


@lru_cache
def get_project_root() -> Path:
    """Project root (cached); the working directory when no root is found."""
    cwd = Path.cwd().resolve()
    return find_project_root(cwd) or find_project_root(Path(__file__).parent) or cwd


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `<root>/.env` once without overriding variables already set."""
    env_path = get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a possibly-relative path against the project root."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
