"""Exception taxonomy shared by the codec, discovery and mutation layers."""

from __future__ import annotations

from pathlib import Path


class SkillStoreError(Exception):
    """Base class; ``str(exc)`` is always a message fit for display."""


class MalformedMetadata(SkillStoreError):
    def __init__(self, reason: str, path: Path | None = None):
        self.reason = reason
        self.path = path
        where = f" in {path}" if path is not None else ""
        super().__init__(f"Malformed frontmatter{where}: {reason}")


class InvalidName(SkillStoreError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid skill name: {reason}")


class AlreadyExists(SkillStoreError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(
            f'A skill named "{Path(path).name}" already exists in the target location.'
        )


class UnsupportedMove(SkillStoreError):
    def __init__(self, reason: str = "This skill cannot be moved to the selected location."):
        super().__init__(reason)


class UnsafePath(SkillStoreError):
    def __init__(self, path: Path, base: Path):
        self.path = path
        self.base = base
        super().__init__(f"Refusing to touch {path}: outside of {base}")


class NotFound(SkillStoreError):
    def __init__(self, directory: Path):
        self.directory = directory
        super().__init__(f"No SKILL.md found in directory: {directory}")


class ReadOnlySkill(SkillStoreError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Skill '{name}' is read-only and cannot be modified.")


class ScanFailed(SkillStoreError):
    def __init__(self, path: Path, underlying: OSError):
        self.path = path
        self.underlying = underlying
        super().__init__(f"Cannot list {path}: {underlying}")


class _IOFailure(SkillStoreError):
    verb = "access"

    def __init__(self, path: Path, underlying: BaseException):
        self.path = path
        self.underlying = underlying
        super().__init__(f"Failed to {self.verb} {Path(path).name}: {underlying}")


class WriteFailed(_IOFailure):
    verb = "write"


class DeleteFailed(_IOFailure):
    verb = "delete"


__all__: list[str] = [
    "SkillStoreError",
    "MalformedMetadata",
    "InvalidName",
    "AlreadyExists",
    "UnsupportedMove",
    "UnsafePath",
    "NotFound",
    "ReadOnlySkill",
    "ScanFailed",
    "WriteFailed",
    "DeleteFailed",
]
