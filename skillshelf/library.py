"""
skillshelf.library

Composition root: ties configuration, discovery, mutations and change watching
together for one process.

Every successful mutation is followed by a full rediscovery; the catalog is
replaced, never patched. Read-only skills (system and plugin locations) are
refused here, before the mutation engine is reached.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from skillshelf import packages
from skillshelf.config import Settings, normalize_path
from skillshelf.discovery import Catalog, discover_all
from skillshelf.errors import ReadOnlySkill
from skillshelf.locations import (
    LegacyCommand,
    Location,
    Personal,
    Project,
    SecondaryPersonal,
    SecondaryProject,
    SecondarySystem,
    base_path,
    is_read_only,
    move_family,
)
from skillshelf.logs import log_operation
from skillshelf.models import Metadata, Skill, SkillPackage
from skillshelf.mutations import SkillMutator
from skillshelf.notifier import ChangeNotifier
from skillshelf.plugins import InstalledPlugin, PluginRegistry

logger = logging.getLogger(__name__)

CatalogListener = Callable[[Catalog], None]


class SkillLibrary:
    """
    function_purpose: Own the current catalog and route user actions to the engines.
    """

    def __init__(self, settings: Settings, plugin_registry: PluginRegistry | None = None):
        self.settings = settings
        self.roots = settings.roots
        self.projects: list[Path] = list(settings.projects)
        self.plugin_registry = plugin_registry or PluginRegistry(self.roots.plugins_manifest)
        self.mutator = SkillMutator(self.roots, ops_log=settings.ops_log_file)
        self.catalog = Catalog()
        self.installed_plugins: list[InstalledPlugin] = []
        self._reload_lock = threading.Lock()
        self._notifier: ChangeNotifier | None = None
        self._listener: CatalogListener | None = None

    # --- Locations & discovery ---
    def locations(self) -> list[Location]:
        """
        function_purpose: Every location to scan, in display order.
        """
        locations: list[Location] = [
            Personal(),
            LegacyCommand(path=str(self.roots.legacy_commands)),
            SecondaryPersonal(),
            SecondarySystem(path=str(self.roots.secondary_system_skills)),
        ]
        for project in self.projects:
            locations.append(Project(path=str(project)))
            locations.append(SecondaryProject(path=str(project)))
        self.installed_plugins = self.plugin_registry.discover()
        locations.extend(p.location for p in self.installed_plugins)
        return locations

    def reload(self) -> Catalog:
        """Rediscover every location and publish a fresh catalog."""
        with self._reload_lock:
            catalog = discover_all(self.locations(), self.roots)
            self.catalog = catalog
        logger.info(
            "Catalog rebuilt: %d skill(s), %d failed location(s)",
            len(catalog),
            len(catalog.failures),
        )
        return catalog

    def _after_mutation(self, directory: Path) -> Skill | None:
        return self.reload().find_by_directory(directory)

    def _require_writable(self, skill: Skill, op: str) -> None:
        if is_read_only(skill.location):
            logger.warning("Refusing %s on read-only skill %s", op, skill.name)
            log_operation(
                self.settings.ops_log_file,
                "skill_denied",
                {"skill": skill.name, "attempted": op, "path": str(skill.directory_path)},
            )
            raise ReadOnlySkill(skill.name)

    # --- CRUD ---
    def create(
        self, name: str, metadata: Metadata, body: str, location: Location
    ) -> Skill | None:
        path = self.mutator.create(name, metadata, body, location)
        if isinstance(location, LegacyCommand):
            self.reload()
            return self.catalog.find_by_name(name, location)
        return self._after_mutation(path)

    def update(self, skill: Skill, metadata: Metadata, body: str) -> Skill | None:
        self._require_writable(skill, "update")
        self.mutator.update(skill, metadata, body)
        self.reload()
        return self._same_skill(skill)

    def set_enabled(self, skill: Skill, enabled: bool) -> Skill | None:
        self._require_writable(skill, "set_enabled")
        if skill.is_enabled == enabled:
            return skill
        self.mutator.set_enabled(skill, enabled)
        self.reload()
        return self._same_skill(skill)

    def toggle_enabled(self, skill: Skill) -> Skill | None:
        return self.set_enabled(skill, not skill.is_enabled)

    def delete(self, skill: Skill) -> None:
        self._require_writable(skill, "delete")
        self.mutator.delete(skill)
        self.reload()

    def move(self, skill: Skill, target: Location) -> Skill | None:
        self._require_writable(skill, "move")
        path = self.mutator.move(skill, target)
        return self._after_mutation(path)

    def fork_to_personal(self, skill: Skill) -> Skill | None:
        """Copy a (usually read-only) skill's document into a new Personal skill."""
        return self.create(skill.name, skill.metadata, skill.body, Personal())

    def _same_skill(self, skill: Skill) -> Skill | None:
        if skill.is_legacy_command:
            return self.catalog.find_by_name(skill.name, skill.location)
        return self.catalog.find_by_directory(skill.directory_path)

    # --- Import / export ---
    def preview_import(self, source: Path) -> SkillPackage:
        return packages.preview(source)

    def import_package(
        self, package: SkillPackage, name: str, location: Location
    ) -> Skill | None:
        try:
            path = packages.commit(
                package, name, location, self.roots, ops_log=self.settings.ops_log_file
            )
        finally:
            packages.cleanup_if_temporary(package)
        return self._after_mutation(path)

    def export(self, skill: Skill, destination: Path) -> Path:
        return packages.export_skill(skill, destination, ops_log=self.settings.ops_log_file)

    # --- Move targets ---
    def available_move_targets(self, skill: Skill) -> list[Location]:
        """
        function_purpose: Locations a skill may be moved to.

        Personal skills may go to any monitored project of the same assistant;
        project skills to personal or any other project. Read-only and legacy
        skills have no targets.
        """
        if skill.is_legacy_command or is_read_only(skill.location):
            return []
        family = move_family(skill.location)
        if family is None:
            return []

        if family == "primary":
            personal: Location = Personal()
            projects: list[Location] = [Project(path=str(p)) for p in self.projects]
        else:
            personal = SecondaryPersonal()
            projects = [SecondaryProject(path=str(p)) for p in self.projects]

        candidates = [personal, *projects]
        return [loc for loc in candidates if loc != skill.location]

    # --- Projects ---
    def add_project(self, path: Path) -> bool:
        project = normalize_path(path, Path("."))
        if project in self.projects:
            return False
        self.projects.append(project)
        self.reload()
        self._rearm()
        return True

    def remove_project(self, path: Path) -> bool:
        project = normalize_path(path, Path("."))
        if project not in self.projects:
            return False
        self.projects.remove(project)
        self.reload()
        self._rearm()
        return True

    # --- Watching ---
    def watch_paths(self) -> list[Path]:
        return [base_path(loc, self.roots) for loc in self.locations()]

    def start_watching(self, listener: CatalogListener | None = None) -> list[Path]:
        """
        function_purpose: Arm change notification; each settled burst reloads the catalog.

        ``listener`` receives the new catalog on the notifier's timer thread.
        """
        self._listener = listener
        if self._notifier is None:
            self._notifier = ChangeNotifier(
                on_change=self._on_change, debounce=self.settings.debounce_seconds
            )
        return self._notifier.watch(self.watch_paths())

    def stop_watching(self) -> None:
        if self._notifier is not None:
            self._notifier.stop()
            self._notifier = None

    def _rearm(self) -> None:
        if self._notifier is not None and self._notifier.is_watching:
            self._notifier.watch(self.watch_paths())

    def _on_change(self) -> None:
        catalog = self.reload()
        if self._listener is not None:
            self._listener(catalog)


__all__: list[str] = ["SkillLibrary"]
