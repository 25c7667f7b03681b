"""Immutable value snapshots produced by discovery and import preview."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from skillshelf.locations import Location

SKILL_FILE = "SKILL.md"
DISABLED_SUFFIX = ".disabled"
DISABLED_SKILL_FILE = SKILL_FILE + DISABLED_SUFFIX
COMMAND_SUFFIX = ".md"
DISABLED_COMMAND_SUFFIX = COMMAND_SUFFIX + DISABLED_SUFFIX


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Metadata:
    """Frontmatter fields of a skill document.

    ``display_name`` maps to the ``name`` key, ``disable_auto_invocation`` to
    ``disable-model-invocation`` and ``model_override`` to ``model``. ``hooks_raw``
    holds the ``hooks`` value re-serialized as YAML text, never interpreted.
    """

    display_name: str | None = None
    description: str | None = None
    argument_hint: str | None = None
    disable_auto_invocation: bool = False
    user_invocable: bool = True
    allowed_tools: str | None = None
    model_override: str | None = None
    context: str | None = None
    agent: str | None = None
    hooks_raw: str | None = None


@dataclass(frozen=True)
class SupportingFile:
    relative_path: str
    path: Path
    size: int
    is_directory: bool


@dataclass(frozen=True)
class Skill:
    name: str
    metadata: Metadata
    body: str
    location: Location
    directory_path: Path
    supporting_files: tuple[SupportingFile, ...] = ()
    last_modified: datetime = field(default_factory=datetime.now)
    is_legacy_command: bool = False
    is_enabled: bool = True
    id: str = field(default_factory=_new_id, compare=False)

    @property
    def display_name(self) -> str:
        return self.metadata.display_name or self.name

    @property
    def metadata_path(self) -> Path:
        """Path of the file holding frontmatter + body in its current state."""
        return self.metadata_path_for(self.is_enabled)

    def metadata_path_for(self, enabled: bool) -> Path:
        if self.is_legacy_command:
            suffix = COMMAND_SUFFIX if enabled else DISABLED_COMMAND_SUFFIX
            return self.directory_path / f"{self.name}{suffix}"
        return self.directory_path / (SKILL_FILE if enabled else DISABLED_SKILL_FILE)


@dataclass(frozen=True)
class SkillPackage:
    """A skill read from an import source that has not been copied anywhere yet."""

    name: str
    metadata: Metadata
    body: str
    supporting_files: tuple[SupportingFile, ...] = ()
    source_directory: Path | None = None
    id: str = field(default_factory=_new_id, compare=False)


__all__: list[str] = [
    "Metadata",
    "Skill",
    "SkillPackage",
    "SupportingFile",
    "SKILL_FILE",
    "DISABLED_SKILL_FILE",
    "COMMAND_SUFFIX",
    "DISABLED_COMMAND_SUFFIX",
]
