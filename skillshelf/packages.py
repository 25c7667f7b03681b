"""
skillshelf.packages

Two-phase import (preview, then commit) and export of skill directories.

Archives are extracted with the external ``unzip`` tool into a temporary
``skill-import-*`` directory; the core never reads zip data itself.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from skillshelf.codec import parse
from skillshelf.discovery import enumerate_supporting_files
from skillshelf.errors import (
    AlreadyExists,
    MalformedMetadata,
    NotFound,
    ReadOnlySkill,
    WriteFailed,
)
from skillshelf.locations import LegacyCommand, Location, Roots, base_path, is_read_only
from skillshelf.logs import log_operation
from skillshelf.models import SKILL_FILE, Skill, SkillPackage
from skillshelf.mutations import assert_within_location, validate_name

logger = logging.getLogger(__name__)

TEMP_PREFIX = "skill-import-"


class ExtractionFailed(WriteFailed):
    verb = "extract"


def _unzip(archive: Path, destination: Path) -> None:
    """
    function_purpose: Run the external unzip tool; raise ExtractionFailed on any failure.
    """
    try:
        res = subprocess.run(
            ["unzip", "-q", "-o", str(archive), "-d", str(destination)],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise ExtractionFailed(archive, exc) from exc
    if res.returncode != 0:
        raise ExtractionFailed(
            archive,
            OSError(f"unzip exited with status {res.returncode}: {res.stdout.strip()}"),
        )
    logger.info("Extracted %s into %s", archive, destination)


def _locate_skill_root(extracted: Path) -> Path:
    if (extracted / SKILL_FILE).is_file():
        return extracted
    subdirs = [p for p in extracted.iterdir() if p.is_dir() and not p.name.startswith(".")]
    if len(subdirs) == 1 and (subdirs[0] / SKILL_FILE).is_file():
        return subdirs[0]
    raise NotFound(extracted)


def extract_archive(archive: Path) -> Path:
    """
    function_purpose: Extract ``archive`` to a temp directory and return the skill root inside it.

    The skill root is the extraction directory itself or its only subdirectory
    holding a SKILL.md. The temp directory is removed again on failure.
    """
    temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
    try:
        _unzip(archive, temp_dir)
        return _locate_skill_root(temp_dir)
    except BaseException:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise


def preview_directory(directory: Path) -> SkillPackage:
    """
    function_purpose: Parse a skill directory into a SkillPackage without copying anything.

    Raises NotFound when SKILL.md is missing and MalformedMetadata on bad frontmatter.
    """
    skill_file = directory / SKILL_FILE
    if not skill_file.is_file():
        raise NotFound(directory)
    try:
        raw = skill_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedMetadata("file content is not valid UTF-8", skill_file) from exc
    metadata, body = parse(raw, skill_file)
    return SkillPackage(
        name=directory.name,
        metadata=metadata,
        body=body,
        supporting_files=tuple(enumerate_supporting_files(directory)),
        source_directory=directory,
    )


def preview(source: Path) -> SkillPackage:
    """Preview a skill directory or a ``.zip`` archive of one."""
    if source.suffix.lower() == ".zip":
        return preview_directory(extract_archive(source))
    return preview_directory(source)


def commit(
    package: SkillPackage,
    name: str,
    location: Location,
    roots: Roots,
    ops_log: Path | None = None,
) -> Path:
    """
    function_purpose: Copy a previewed package to ``<location base>/<name>``.

    ``name`` may differ from the source directory name. Returns the new directory.
    """
    if package.source_directory is None:
        raise NotFound(Path(package.name))
    validate_name(name)
    if is_read_only(location) or isinstance(location, LegacyCommand):
        raise ReadOnlySkill(name)

    target_base = base_path(location, roots)
    target = assert_within_location(target_base / name, location, roots)
    if os.path.lexists(target):
        raise AlreadyExists(target)

    try:
        target_base.mkdir(parents=True, exist_ok=True)
        shutil.copytree(package.source_directory, target, symlinks=True)
    except OSError as exc:
        shutil.rmtree(target, ignore_errors=True)
        raise WriteFailed(target, exc) from exc

    logger.info("Imported skill %s into %s", name, target)
    log_operation(
        ops_log,
        "skill_import",
        {"skill": name, "source": str(package.source_directory), "path": str(target)},
    )
    return target


def cleanup_if_temporary(package: SkillPackage) -> None:
    """Remove the ``skill-import-*`` scratch directory an archive preview created."""
    source = package.source_directory
    if source is None:
        return
    temp_root = Path(tempfile.gettempdir()).resolve()
    resolved = source.resolve()
    for candidate in (resolved, *resolved.parents):
        if candidate.parent == temp_root:
            if candidate.name.startswith(TEMP_PREFIX):
                shutil.rmtree(candidate, ignore_errors=True)
            return


def export_skill(skill: Skill, destination: Path, ops_log: Path | None = None) -> Path:
    """
    function_purpose: Copy a skill's (resolved) directory to ``destination/<name>``.
    """
    target = destination / skill.name
    if os.path.lexists(target):
        raise AlreadyExists(target)
    source = skill.directory_path.resolve()
    try:
        if skill.is_legacy_command:
            target.mkdir(parents=True)
            shutil.copy2(skill.metadata_path, target / skill.metadata_path.name)
        else:
            shutil.copytree(source, target)
    except OSError as exc:
        raise WriteFailed(target, exc) from exc

    logger.info("Exported skill %s to %s", skill.name, target)
    log_operation(ops_log, "skill_export", {"skill": skill.name, "path": str(target)})
    return target


__all__: list[str] = [
    "ExtractionFailed",
    "cleanup_if_temporary",
    "commit",
    "export_skill",
    "extract_archive",
    "preview",
    "preview_directory",
]
