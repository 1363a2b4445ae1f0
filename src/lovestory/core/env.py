"""
Where LoveStory keeps local state.

`storage.dir` is usually relative (`.data/lovestory`). uvicorn, the CLI and pytest start
from different working directories, so relative paths are anchored on a "home":
`LOVESTORY_HOME` when set, otherwise the nearest ancestor of the working directory that
holds a `pyproject.toml` or `.env`, otherwise the working directory itself. A `.env` in
that home is loaded once and never overrides variables already in the environment.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_HOME_MARKERS = ("pyproject.toml", ".env")


def get_home() -> Path:
    explicit = os.getenv("LOVESTORY_HOME")
    if explicit:
        return Path(explicit).expanduser().resolve()
    cwd = Path.cwd().resolve()
    for candidate in (cwd, *cwd.parents):
        if any((candidate / marker).is_file() for marker in _HOME_MARKERS):
            return candidate
    return cwd


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `<home>/.env` once; returns its path, or None when there is none."""
    env_path = get_home() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_home_path(path: str | Path) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_home() / p).resolve()
