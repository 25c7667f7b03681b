from __future__ import annotations

import json
from pathlib import Path

from skillshelf.locations import Plugin
from skillshelf.plugins import PluginRegistry


def _manifest(path: Path, plugins: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    _ = path.write_text(json.dumps({"version": 2, "plugins": plugins}), encoding="utf-8")
    return path


def test_discover_plugins_with_skills_dir(tmp_path: Path) -> None:
    with_skills = tmp_path / "install" / "tools"
    (with_skills / "skills").mkdir(parents=True)
    without_skills = tmp_path / "install" / "empty"
    without_skills.mkdir(parents=True)

    manifest = _manifest(
        tmp_path / "plugins" / "installed_plugins.json",
        {
            "tools@market": [{"installPath": str(with_skills)}, {"installPath": "/ignored"}],
            "empty@market": [{"installPath": str(without_skills)}],
            "broken@market": "not-a-list",
        },
    )
    plugins = PluginRegistry(manifest).discover()

    assert len(plugins) == 1
    plugin = plugins[0]
    assert plugin.name == "tools"
    assert plugin.skills_dir == with_skills / "skills"
    assert plugin.location == Plugin(id="tools@market", name="tools", base_path=str(with_skills / "skills"))


def test_missing_or_corrupt_manifest_yields_nothing(tmp_path: Path) -> None:
    assert PluginRegistry(tmp_path / "nope.json").discover() == []

    corrupt = tmp_path / "bad.json"
    _ = corrupt.write_text("{not json", encoding="utf-8")
    assert PluginRegistry(corrupt).discover() == []
