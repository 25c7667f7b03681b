"""
skillshelf.mutations

Create, update, enable/disable, delete and move skills on disk.

Every path written, renamed or removed first passes assert_within_location():
it must sit strictly inside the base directory of the location the skill claims
to live in, whatever its actual directory happens to be.

Read-only locations are an authorization concern of the caller (see
SkillLibrary); this module only refuses to create into them or move across them.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from skillshelf.codec import serialize
from skillshelf.errors import (
    AlreadyExists,
    DeleteFailed,
    InvalidName,
    NotFound,
    ReadOnlySkill,
    UnsafePath,
    UnsupportedMove,
    WriteFailed,
)
from skillshelf.locations import (
    LegacyCommand,
    Location,
    Roots,
    base_path,
    is_read_only,
    move_family,
)
from skillshelf.logs import log_operation
from skillshelf.models import (
    COMMAND_SUFFIX,
    DISABLED_COMMAND_SUFFIX,
    DISABLED_SKILL_FILE,
    SKILL_FILE,
    Metadata,
    Skill,
)

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"[A-Za-z0-9_-]+")


def validate_name(name: str) -> None:
    if not name:
        raise InvalidName("Name cannot be empty")
    if not _NAME_RE.fullmatch(name):
        raise InvalidName("Only letters, numbers, hyphens, and underscores are allowed")


def _lexical(path: Path) -> Path:
    return Path(os.path.normpath(os.path.abspath(path)))


def assert_within_location(target: Path, location: Location, roots: Roots) -> Path:
    """
    function_purpose: Refuse any path that is not strictly below the location's base.

    The comparison is lexical after normalizing ``..``; symlinks are not resolved so
    a symlinked skill is handled as the link itself. Returns the normalized path.
    """
    base = _lexical(base_path(location, roots))
    normalized = _lexical(target)
    if base not in normalized.parents:
        logger.error(
            "Path safety violation: %s is outside %s (location=%r)",
            normalized,
            base,
            location,
        )
        raise UnsafePath(normalized, base)
    return normalized


def _atomic_write(path: Path, content: str) -> None:
    """Write via a hidden temp file in the same directory, then rename over ``path``."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            _ = f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _remove(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


class SkillMutator:
    """
    function_purpose: Apply single-skill mutations below the configured roots.

    Mutations touching the same directory are serialized within the process.
    Callers re-run discovery after any successful mutation.
    """

    def __init__(self, roots: Roots, ops_log: Path | None = None):
        self.roots = roots
        self.ops_log = ops_log
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        key = str(_lexical(path))
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def _serialized(self, *paths: Path) -> Iterator[None]:
        # fixed acquisition order so two-path moves cannot deadlock
        keys = sorted({str(_lexical(p)) for p in paths})
        locks = [self._lock_for(Path(k)) for k in keys]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()

    def _check(self, target: Path, location: Location) -> Path:
        return assert_within_location(target, location, self.roots)

    # --- Create ---
    def create(self, name: str, metadata: Metadata, body: str, location: Location) -> Path:
        """
        function_purpose: Create a new skill and return its directory (or command file).

        Directory locations get ``<base>/<name>/SKILL.md``; the legacy commands
        location gets a flat ``<base>/<name>.md``. A failed write removes what was
        just created before WriteFailed is raised.
        """
        validate_name(name)
        if is_read_only(location):
            raise ReadOnlySkill(name)

        base = base_path(location, self.roots)
        content = serialize(metadata, body)
        if isinstance(location, LegacyCommand):
            return self._create_command(name, content, base, location)

        target = self._check(base / name, location)
        with self._serialized(target):
            if os.path.lexists(target):
                raise AlreadyExists(target)
            try:
                target.mkdir(parents=True)
            except FileExistsError:
                raise AlreadyExists(target) from None
            except OSError as exc:
                raise WriteFailed(target, exc) from exc

            skill_file = target / SKILL_FILE
            try:
                _atomic_write(skill_file, content)
            except OSError as exc:
                shutil.rmtree(target, ignore_errors=True)
                raise WriteFailed(skill_file, exc) from exc

        logger.info("Created skill %s at %s", name, target)
        log_operation(self.ops_log, "skill_create", {"skill": name, "path": str(target)})
        return target

    def _create_command(self, name: str, content: str, base: Path, location: Location) -> Path:
        target = self._check(base / f"{name}{COMMAND_SUFFIX}", location)
        disabled = self._check(base / f"{name}{DISABLED_COMMAND_SUFFIX}", location)
        with self._serialized(target):
            if os.path.lexists(target) or os.path.lexists(disabled):
                raise AlreadyExists(target)
            try:
                base.mkdir(parents=True, exist_ok=True)
                _atomic_write(target, content)
            except OSError as exc:
                raise WriteFailed(target, exc) from exc

        logger.info("Created command %s at %s", name, target)
        log_operation(self.ops_log, "command_create", {"skill": name, "path": str(target)})
        return target

    # --- Update ---
    def update(self, skill: Skill, metadata: Metadata, body: str) -> Path:
        """
        function_purpose: Overwrite the skill's metadata file in place.

        Writes whichever of the enabled/disabled files currently exists. The caller
        must already have refused read-only skills.
        """
        candidates = [skill.metadata_path_for(True), skill.metadata_path_for(False)]
        if not skill.is_enabled:
            candidates.reverse()
        for candidate in candidates:
            self._check(candidate, skill.location)

        with self._serialized(skill.directory_path):
            path = next((c for c in candidates if c.is_file()), None)
            if path is None:
                raise NotFound(skill.directory_path)
            try:
                _atomic_write(path, serialize(metadata, body))
            except OSError as exc:
                raise WriteFailed(path, exc) from exc

        logger.info("Updated skill %s (%s)", skill.name, path)
        log_operation(self.ops_log, "skill_update", {"skill": skill.name, "path": str(path)})
        return path

    # --- Enable / Disable ---
    def set_enabled(self, skill: Skill, enabled: bool) -> Path:
        """
        function_purpose: Rename SKILL.md <-> SKILL.md.disabled (or <name>.md <-> <name>.md.disabled).

        No filesystem access at all when the skill is already in the requested state.
        """
        if skill.is_enabled == enabled:
            return skill.metadata_path

        source = self._check(skill.metadata_path_for(skill.is_enabled), skill.location)
        target = self._check(skill.metadata_path_for(enabled), skill.location)

        with self._serialized(skill.directory_path):
            if os.path.lexists(target):
                raise AlreadyExists(target)
            try:
                os.rename(source, target)
            except OSError as exc:
                raise WriteFailed(target, exc) from exc

        logger.info("%s skill %s", "Enabled" if enabled else "Disabled", skill.name)
        log_operation(
            self.ops_log,
            "skill_set_enabled",
            {"skill": skill.name, "enabled": enabled, "path": str(target)},
        )
        return target

    # --- Delete ---
    def delete(self, skill: Skill) -> Path:
        """
        function_purpose: Remove a skill directory, or the single file of a legacy command.

        A symlinked skill directory is removed as a link; its target is left alone.
        """
        raw_target = skill.metadata_path if skill.is_legacy_command else skill.directory_path
        target = self._check(raw_target, skill.location)

        with self._serialized(skill.directory_path if not skill.is_legacy_command else target):
            try:
                _remove(target)
            except OSError as exc:
                log_operation(
                    self.ops_log,
                    "skill_delete_error",
                    {"skill": skill.name, "path": str(target), "error": str(exc)},
                )
                raise DeleteFailed(target, exc) from exc

        logger.info("Deleted skill %s at %s", skill.name, target)
        log_operation(self.ops_log, "skill_delete", {"skill": skill.name, "path": str(target)})
        return target

    # --- Move ---
    def move(self, skill: Skill, target_location: Location) -> Path:
        """
        function_purpose: Move a skill directory between personal and project locations.

        Only within one assistant's family, never for legacy commands or read-only
        locations. Uses rename when possible, copy + delete across filesystems.
        Returns the new directory.
        """
        if (
            skill.is_legacy_command
            or is_read_only(skill.location)
            or is_read_only(target_location)
        ):
            raise UnsupportedMove()
        family = move_family(skill.location)
        if family is None or family != move_family(target_location):
            raise UnsupportedMove()

        source = self._check(skill.directory_path, skill.location)
        target_base = base_path(target_location, self.roots)
        target = self._check(target_base / skill.name, target_location)

        with self._serialized(source, target):
            if os.path.lexists(target):
                raise AlreadyExists(target)
            try:
                target_base.mkdir(parents=True, exist_ok=True)
                shutil.move(str(source), str(target))
            except OSError as exc:
                self._rollback_move(source, target, skill)
                log_operation(
                    self.ops_log,
                    "skill_move_error",
                    {"skill": skill.name, "from": str(source), "to": str(target), "error": str(exc)},
                )
                raise WriteFailed(target, exc) from exc

        logger.info("Moved skill %s from %s to %s", skill.name, source, target)
        log_operation(
            self.ops_log,
            "skill_move",
            {"skill": skill.name, "from": str(source), "to": str(target)},
        )
        return target

    def _rollback_move(self, source: Path, target: Path, skill: Skill) -> None:
        # Only discard the copy while the source is still intact.
        source_intact = (source / SKILL_FILE).exists() or (source / DISABLED_SKILL_FILE).exists()
        if source_intact and os.path.lexists(target):
            try:
                _remove(target)
            except OSError:
                logger.warning("Could not roll back partial move of %s to %s", skill.name, target)


__all__: list[str] = ["SkillMutator", "assert_within_location", "validate_name"]
