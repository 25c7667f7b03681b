"""
skillshelf.config

Settings resolved from the environment and passed explicitly to the library.

Environment (optional):
- SKILLS_HOME: primary assistant home (default: ~/.claude)
- SECONDARY_SKILLS_HOME: secondary assistant home (default: ~/.codex)
- SKILLS_PROJECTS: os.pathsep separated project roots to monitor
- LOG_FILE: rotating log file (default: ~/.skillshelf/logs/skillshelf.log)
- OPS_LOG_FILE: JSON-lines mutation audit log (default: next to LOG_FILE)
- WATCH_DEBOUNCE_MS: change notification debounce in milliseconds (default: 500)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from skillshelf.locations import Roots

DEFAULT_HOME = Path("~/.claude")
DEFAULT_SECONDARY_HOME = Path("~/.codex")
DEFAULT_LOG_FILE = Path("~/.skillshelf/logs/skillshelf.log")
OPS_LOG_NAME = "skillshelf_operations.log"
DEFAULT_DEBOUNCE_MS = 500


def normalize_path(raw: str | os.PathLike[str] | None, default: Path) -> Path:
    """
    function_purpose: Trim, expand ``~`` and absolutize a configured path.

    Empty or missing values fall back to ``default``.
    """
    text = str(raw).strip() if raw is not None else ""
    chosen = Path(text) if text else default
    return Path(os.path.abspath(chosen.expanduser()))


@dataclass(frozen=True)
class Settings:
    home: Path
    secondary_home: Path
    projects: tuple[Path, ...] = ()
    log_file: Path = field(default_factory=lambda: normalize_path(None, DEFAULT_LOG_FILE))
    ops_log_file: Path | None = None
    debounce_seconds: float = DEFAULT_DEBOUNCE_MS / 1000

    @property
    def roots(self) -> Roots:
        return Roots(home=self.home, secondary_home=self.secondary_home)


def _debounce_from(raw: str | None) -> float:
    if not raw or not raw.strip():
        return DEFAULT_DEBOUNCE_MS / 1000
    try:
        ms = int(raw.strip())
    except ValueError:
        raise ValueError(f"WATCH_DEBOUNCE_MS must be an integer, got {raw!r}") from None
    if ms < 0:
        raise ValueError("WATCH_DEBOUNCE_MS must not be negative")
    return ms / 1000


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    function_purpose: Build Settings from environment variables.
    """
    env = os.environ if environ is None else environ

    projects: list[Path] = []
    for raw in (env.get("SKILLS_PROJECTS") or "").split(os.pathsep):
        if raw.strip():
            project = normalize_path(raw, Path("."))
            if project not in projects:
                projects.append(project)

    log_file = normalize_path(env.get("LOG_FILE"), DEFAULT_LOG_FILE)
    ops_log_file = normalize_path(env.get("OPS_LOG_FILE"), log_file.parent / OPS_LOG_NAME)

    return Settings(
        home=normalize_path(env.get("SKILLS_HOME"), DEFAULT_HOME),
        secondary_home=normalize_path(
            env.get("SECONDARY_SKILLS_HOME"), DEFAULT_SECONDARY_HOME
        ),
        projects=tuple(projects),
        log_file=log_file,
        ops_log_file=ops_log_file,
        debounce_seconds=_debounce_from(env.get("WATCH_DEBOUNCE_MS")),
    )


__all__: list[str] = ["Settings", "load_settings", "normalize_path"]
