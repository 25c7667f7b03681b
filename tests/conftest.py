"""Shared fixtures: throwaway assistant homes and skill directories under tmp_path."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillshelf.config import Settings
from skillshelf.locations import Roots


def write_skill(
    base: Path, name: str, content: str = "---\ndescription: test\n---\n\nbody\n", enabled: bool = True
) -> Path:
    directory = base / name
    directory.mkdir(parents=True, exist_ok=True)
    filename = "SKILL.md" if enabled else "SKILL.md.disabled"
    _ = (directory / filename).write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def roots(tmp_path: Path) -> Roots:
    return Roots(home=tmp_path / "home", secondary_home=tmp_path / "secondary")


@pytest.fixture
def settings(tmp_path: Path, roots: Roots) -> Settings:
    project = tmp_path / "project"
    project.mkdir()
    return Settings(
        home=roots.home,
        secondary_home=roots.secondary_home,
        projects=(project,),
        log_file=tmp_path / "logs" / "skillshelf.log",
        ops_log_file=tmp_path / "logs" / "ops.log",
        debounce_seconds=0.05,
    )


@pytest.fixture
def make_skill():
    return write_skill
