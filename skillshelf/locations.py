"""
skillshelf.locations

Location model: where a skill lives and what may be done there.

A location is a closed set of variants. Each variant carries only the path
parameters needed to compute its base directory; roots that come from
configuration (the two assistant home directories) are injected through
``Roots`` so nothing here touches the filesystem or reads the environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

PRIMARY_PROJECT_SUBPATH = Path(".claude") / "skills"
SECONDARY_PROJECT_SUBPATH = Path(".agents") / "skills"


@dataclass(frozen=True)
class Roots:
    """
    function_purpose: Home directories of the two assistants, resolved by configuration.
    """

    home: Path
    secondary_home: Path

    @property
    def personal_skills(self) -> Path:
        return self.home / "skills"

    @property
    def legacy_commands(self) -> Path:
        return self.home / "commands"

    @property
    def plugins_manifest(self) -> Path:
        return self.home / "plugins" / "installed_plugins.json"

    @property
    def secondary_skills(self) -> Path:
        return self.secondary_home / "skills"

    @property
    def secondary_system_skills(self) -> Path:
        return self.secondary_skills / ".system"


@dataclass(frozen=True)
class Personal:
    pass


@dataclass(frozen=True)
class SecondaryPersonal:
    pass


@dataclass(frozen=True)
class SecondarySystem:
    path: str


@dataclass(frozen=True)
class Project:
    path: str


@dataclass(frozen=True)
class SecondaryProject:
    path: str


@dataclass(frozen=True)
class LegacyCommand:
    path: str


@dataclass(frozen=True)
class Plugin:
    id: str
    name: str
    base_path: str


Location = Union[
    Personal,
    SecondaryPersonal,
    SecondarySystem,
    Project,
    SecondaryProject,
    LegacyCommand,
    Plugin,
]


def base_path(location: Location, roots: Roots) -> Path:
    """
    function_purpose: Map a location to the directory its skills live in.

    Project variants append the assistant-specific ``.<assistant>/skills`` subpath
    to the project root; the rest come from ``roots`` or their own parameters.
    """
    match location:
        case Personal():
            return roots.personal_skills
        case SecondaryPersonal():
            return roots.secondary_skills
        case SecondarySystem(path=path):
            return Path(path)
        case Project(path=path):
            return Path(path) / PRIMARY_PROJECT_SUBPATH
        case SecondaryProject(path=path):
            return Path(path) / SECONDARY_PROJECT_SUBPATH
        case LegacyCommand(path=path):
            return Path(path)
        case Plugin(base_path=path):
            return Path(path)
    raise TypeError(f"not a location: {location!r}")


def is_read_only(location: Location) -> bool:
    return isinstance(location, (SecondarySystem, Plugin))


def display_name(location: Location) -> str:
    match location:
        case Personal() | SecondaryPersonal():
            return "Personal"
        case SecondarySystem():
            return "System Skill"
        case Project(path=path) | SecondaryProject(path=path):
            return f"Project: {Path(path).name}"
        case LegacyCommand():
            return "Legacy Command"
        case Plugin(name=name):
            return name
    raise TypeError(f"not a location: {location!r}")


def move_family(location: Location) -> str | None:
    """
    function_purpose: Name the family a skill may move within, or None if it cannot move.

    Personal and project skills of one assistant form a family; read-only and
    legacy locations belong to none.
    """
    match location:
        case Personal() | Project():
            return "primary"
        case SecondaryPersonal() | SecondaryProject():
            return "secondary"
    return None


__all__: list[str] = [
    "Roots",
    "Location",
    "Personal",
    "SecondaryPersonal",
    "SecondarySystem",
    "Project",
    "SecondaryProject",
    "LegacyCommand",
    "Plugin",
    "base_path",
    "is_read_only",
    "display_name",
    "move_family",
    "PRIMARY_PROJECT_SUBPATH",
    "SECONDARY_PROJECT_SUBPATH",
]
