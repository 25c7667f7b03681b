from __future__ import annotations

from pathlib import Path

import pytest

from skillshelf.locations import (
    LegacyCommand,
    Personal,
    Plugin,
    Project,
    Roots,
    SecondaryPersonal,
    SecondaryProject,
    SecondarySystem,
    base_path,
    display_name,
    is_read_only,
    move_family,
)


def test_base_paths_follow_injected_roots() -> None:
    roots = Roots(home=Path("/h"), secondary_home=Path("/s"))
    assert base_path(Personal(), roots) == Path("/h/skills")
    assert base_path(SecondaryPersonal(), roots) == Path("/s/skills")
    assert base_path(SecondarySystem(path="/s/skills/.system"), roots) == Path("/s/skills/.system")
    assert base_path(Project(path="/repo"), roots) == Path("/repo/.claude/skills")
    assert base_path(SecondaryProject(path="/repo"), roots) == Path("/repo/.agents/skills")
    assert base_path(LegacyCommand(path="/h/commands"), roots) == Path("/h/commands")
    assert base_path(Plugin(id="p@m", name="p", base_path="/plug/skills"), roots) == Path("/plug/skills")


def test_roots_derived_paths() -> None:
    roots = Roots(home=Path("/h"), secondary_home=Path("/s"))
    assert roots.legacy_commands == Path("/h/commands")
    assert roots.plugins_manifest == Path("/h/plugins/installed_plugins.json")
    assert roots.secondary_system_skills == Path("/s/skills/.system")


@pytest.mark.parametrize(
    "location, expected",
    [
        (Personal(), False),
        (SecondaryPersonal(), False),
        (Project(path="/r"), False),
        (SecondaryProject(path="/r"), False),
        (LegacyCommand(path="/c"), False),
        (SecondarySystem(path="/x"), True),
        (Plugin(id="a", name="a", base_path="/p"), True),
    ],
)
def test_read_only_variants(location, expected: bool) -> None:
    assert is_read_only(location) is expected


def test_display_names() -> None:
    assert display_name(Personal()) == "Personal"
    assert display_name(Project(path="/work/my-app")) == "Project: my-app"
    assert display_name(SecondarySystem(path="/x")) == "System Skill"
    assert display_name(LegacyCommand(path="/c")) == "Legacy Command"
    assert display_name(Plugin(id="tools@market", name="tools", base_path="/p")) == "tools"


def test_move_family() -> None:
    assert move_family(Personal()) == move_family(Project(path="/r")) == "primary"
    assert move_family(SecondaryPersonal()) == move_family(SecondaryProject(path="/r")) == "secondary"
    assert move_family(LegacyCommand(path="/c")) is None
    assert move_family(SecondarySystem(path="/x")) is None


def test_locations_are_value_equal() -> None:
    assert Project(path="/r") == Project(path="/r")
    assert Project(path="/r") != SecondaryProject(path="/r")
    assert Personal() != SecondaryPersonal()
