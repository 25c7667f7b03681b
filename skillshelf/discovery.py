"""
skillshelf.discovery

Build an in-memory catalog of skills by walking locations on disk.

Partial failure is expected: a directory without a SKILL.md, an unreadable file
or broken frontmatter drops that one entry and the scan continues. Only a base
directory that exists but cannot be listed fails a location (ScanFailed).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from skillshelf.codec import parse
from skillshelf.errors import (
    MalformedMetadata,
    NotFound,
    ScanFailed,
    SkillStoreError,
)
from skillshelf.locations import (
    LegacyCommand,
    Location,
    Roots,
    base_path,
)
from skillshelf.models import (
    COMMAND_SUFFIX,
    DISABLED_COMMAND_SUFFIX,
    DISABLED_SKILL_FILE,
    SKILL_FILE,
    Skill,
    SupportingFile,
)

logger = logging.getLogger(__name__)

_METADATA_FILES = {SKILL_FILE, DISABLED_SKILL_FILE}


def _is_hidden(path: Path) -> bool:
    return path.name.startswith(".")


def _list_dir(path: Path) -> list[Path]:
    try:
        return sorted(path.iterdir())
    except OSError as exc:
        raise ScanFailed(path, exc) from exc


def _modified(path: Path) -> datetime:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime)
    except OSError:
        return datetime.now()


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedMetadata("file content is not valid UTF-8", path) from exc


def enumerate_supporting_files(directory: Path) -> list[SupportingFile]:
    """
    function_purpose: List everything under a skill directory except its metadata file.

    Recursive, skips hidden entries, and sizes are taken from the resolved target.
    Entries that cannot be stat'd are dropped.
    """
    files: list[SupportingFile] = []
    for entry in sorted(directory.rglob("*")):
        rel = entry.relative_to(directory)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if len(rel.parts) == 1 and entry.name in _METADATA_FILES:
            continue
        try:
            st = entry.stat()
            is_dir = entry.is_dir()
        except OSError:
            continue
        files.append(
            SupportingFile(
                relative_path=rel.as_posix(),
                path=entry,
                size=0 if is_dir else st.st_size,
                is_directory=is_dir,
            )
        )
    return files


def read_skill(directory: Path, location: Location) -> Skill:
    """
    function_purpose: Read and parse one skill directory.

    SKILL.md wins over SKILL.md.disabled; NotFound if neither exists.
    """
    enabled_path = directory / SKILL_FILE
    disabled_path = directory / DISABLED_SKILL_FILE
    if enabled_path.is_file():
        skill_file, is_enabled = enabled_path, True
    elif disabled_path.is_file():
        skill_file, is_enabled = disabled_path, False
    else:
        raise NotFound(directory)

    metadata, body = parse(_read_text(skill_file), skill_file)
    try:
        supporting = enumerate_supporting_files(directory)
    except OSError:
        logger.debug("Could not enumerate supporting files in %s", directory, exc_info=True)
        supporting = []

    return Skill(
        name=directory.name,
        metadata=metadata,
        body=body,
        location=location,
        directory_path=directory,
        supporting_files=tuple(supporting),
        last_modified=_modified(skill_file),
        is_legacy_command=False,
        is_enabled=is_enabled,
    )


def discover_skill_directories(base: Path, location: Location) -> list[Skill]:
    """
    function_purpose: Discover skills stored one per immediate subdirectory of ``base``.

    A missing ``base`` yields no skills. Symlinked skill directories are followed
    when deciding what is a directory.
    """
    if not base.exists():
        return []

    skills: list[Skill] = []
    for child in _list_dir(base):
        # is_dir() follows symlinks; symlinked skill installs must count
        if _is_hidden(child) or not child.is_dir():
            continue
        try:
            skills.append(read_skill(child, location))
        except NotFound:
            logger.debug("Skipping %s: no SKILL.md", child)
        except (SkillStoreError, OSError) as exc:
            logger.warning("Skipping skill at %s: %s", child, exc)
    return skills


def _command_name(filename: str) -> tuple[str, bool] | None:
    if filename.endswith(DISABLED_COMMAND_SUFFIX):
        return filename[: -len(DISABLED_COMMAND_SUFFIX)], False
    if filename.endswith(COMMAND_SUFFIX):
        return filename[: -len(COMMAND_SUFFIX)], True
    return None


def discover_legacy_commands(base: Path) -> list[Skill]:
    """
    function_purpose: Discover flat ``<name>.md`` / ``<name>.md.disabled`` command files.

    Non-recursive; each file is a complete frontmatter + body document.
    """
    if not base.exists():
        return []

    location = LegacyCommand(path=str(base))
    commands: list[Skill] = []
    for entry in _list_dir(base):
        parsed_name = _command_name(entry.name)
        if parsed_name is None or _is_hidden(entry) or entry.is_dir():
            continue
        name, is_enabled = parsed_name
        if not name:
            continue
        try:
            metadata, body = parse(_read_text(entry), entry)
        except (SkillStoreError, OSError) as exc:
            logger.warning("Skipping command %s: %s", entry, exc)
            continue
        commands.append(
            Skill(
                name=name,
                metadata=metadata,
                body=body,
                location=location,
                directory_path=base,
                last_modified=_modified(entry),
                is_legacy_command=True,
                is_enabled=is_enabled,
            )
        )
    return commands


def discover_location(location: Location, roots: Roots) -> list[Skill]:
    base = base_path(location, roots)
    if isinstance(location, LegacyCommand):
        return discover_legacy_commands(base)
    return discover_skill_directories(base, location)


@dataclass(frozen=True)
class Catalog:
    """
    function_purpose: One published snapshot of every discovered skill.

    ``failures`` maps a location whose base directory could not be listed to the
    error message; skills from other locations are still present.
    """

    skills: tuple[Skill, ...] = ()
    failures: dict[Location, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.skills)

    def __iter__(self):
        return iter(self.skills)

    def for_location(self, location: Location) -> list[Skill]:
        return [s for s in self.skills if s.location == location]

    def find_by_directory(self, path: Path) -> Skill | None:
        for skill in self.skills:
            if skill.directory_path == path and not skill.is_legacy_command:
                return skill
        return None

    def find_by_name(self, name: str, location: Location | None = None) -> Skill | None:
        for skill in self.skills:
            if skill.name == name and (location is None or skill.location == location):
                return skill
        return None

    def search(self, query: str) -> list[Skill]:
        """Case-insensitive match on display name and description."""
        q = (query or "").strip().lower()
        if not q:
            return list(self.skills)
        return [
            s
            for s in self.skills
            if q in s.display_name.lower() or q in (s.metadata.description or "").lower()
        ]


def discover_all(
    locations: Sequence[Location], roots: Roots, max_workers: int | None = None
) -> Catalog:
    """
    function_purpose: Discover every location in parallel and join into one Catalog.

    Each location runs as its own task returning its own list; results are
    concatenated in the order of ``locations``.
    """
    if not locations:
        return Catalog()

    workers = max_workers or min(8, len(locations))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="discover") as pool:
        futures = [pool.submit(discover_location, loc, roots) for loc in locations]

    skills: list[Skill] = []
    failures: dict[Location, str] = {}
    for location, future in zip(locations, futures):
        try:
            skills.extend(future.result())
        except ScanFailed as exc:
            logger.warning("Discovery failed for %r: %s", location, exc)
            failures[location] = str(exc)
    return Catalog(skills=tuple(skills), failures=failures)


__all__: list[str] = [
    "Catalog",
    "discover_all",
    "discover_location",
    "discover_skill_directories",
    "discover_legacy_commands",
    "enumerate_supporting_files",
    "read_skill",
]
