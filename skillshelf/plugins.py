"""Read-only plugin skill locations from the installed plugins manifest."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from skillshelf.locations import Plugin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstalledPlugin:
    id: str
    name: str
    skills_dir: Path

    @property
    def location(self) -> Plugin:
        return Plugin(id=self.id, name=self.name, base_path=str(self.skills_dir))


class PluginRegistry:
    """
    function_purpose: Discover installed plugins that ship a ``skills/`` directory.

    Manifest shape: ``{"plugins": {"<id>": [{"installPath": "..."}, ...]}}``.
    Only the first install entry per id is used.
    """

    def __init__(self, manifest_path: Path):
        self.manifest_path = manifest_path

    def _load(self) -> dict:
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable plugin manifest %s: %s", self.manifest_path, exc)
            return {}
        plugins = data.get("plugins") if isinstance(data, dict) else None
        return plugins if isinstance(plugins, dict) else {}

    def discover(self) -> list[InstalledPlugin]:
        result: list[InstalledPlugin] = []
        for plugin_id, entries in self._load().items():
            if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
                continue
            install_path = entries[0].get("installPath")
            if not isinstance(install_path, str) or not install_path:
                continue
            skills_dir = Path(install_path) / "skills"
            if not skills_dir.exists():
                continue
            name = plugin_id.split("@", 1)[0] or plugin_id
            result.append(InstalledPlugin(id=plugin_id, name=name, skills_dir=skills_dir))
        result.sort(key=lambda p: (p.name, p.id))
        return result


__all__: list[str] = ["InstalledPlugin", "PluginRegistry"]
