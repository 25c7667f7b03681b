"""
skillshelf.server

FastMCP stdio server and inspection CLI over a SkillLibrary.

Server-level documentation:
- Purpose: Make skills stored in personal, project, system, plugin and legacy command
  locations programmatically accessible to MCP-aware clients.
- Why use it:
  * List skills across every location with their metadata and enabled state
  * Fetch full skill documents (frontmatter fields + markdown body)
  * Create, edit, enable/disable, delete and move skills without leaving the client
  * Import skill folders or zip archives, export skills to a folder
- Transport: STDIO by default (ideal for clients that spawn the server process)
- Safety: every write or delete is confined to the skill's own location; system and
  plugin skills are read-only
- Logging: Console + rotating file logs, JSON-lines audit log of mutations
- Startup: discovers all locations, then watches them and rebuilds the catalog on change

Environment (optional): see skillshelf.config.

Usage:
- As a script:
  python -m skillshelf              # starts stdio server
  python -m skillshelf --help       # CLI for inspection without starting server
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from skillshelf.config import load_settings, normalize_path
from skillshelf.discovery import Catalog
from skillshelf.errors import SkillStoreError
from skillshelf.library import SkillLibrary
from skillshelf.locations import (
    LegacyCommand,
    Location,
    Personal,
    Plugin,
    Project,
    SecondaryPersonal,
    SecondaryProject,
    SecondarySystem,
    display_name,
    is_read_only,
)
from skillshelf.logs import LOGGER_NAME, configure_logging
from skillshelf.models import Metadata, Skill

SERVER_NAME = "SkillShelf"

_FLAG_FIELDS = frozenset({"disable_auto_invocation", "user_invocable"})

logger = logging.getLogger(__name__)


# --- Wire helpers ---
def location_to_dict(location: Location) -> dict[str, Any]:
    match location:
        case Personal():
            kind, params = "personal", {}
        case SecondaryPersonal():
            kind, params = "secondary_personal", {}
        case SecondarySystem(path=path):
            kind, params = "secondary_system", {"path": path}
        case Project(path=path):
            kind, params = "project", {"path": path}
        case SecondaryProject(path=path):
            kind, params = "secondary_project", {"path": path}
        case LegacyCommand(path=path):
            kind, params = "legacy_command", {"path": path}
        case Plugin(id=plugin_id, name=name, base_path=path):
            kind, params = "plugin", {"id": plugin_id, "name": name, "path": path}
        case _:
            raise TypeError(f"not a location: {location!r}")
    return {
        "kind": kind,
        **params,
        "label": display_name(location),
        "read_only": is_read_only(location),
    }


def location_from_dict(library: SkillLibrary, data: dict[str, Any]) -> Location:
    """
    function_purpose: Resolve a client-supplied location description.

    Accepts {"kind": "personal" | "secondary_personal" | "project" | "secondary_project"
    | "legacy_command"} with "path" for project kinds. Read-only kinds are not
    accepted as targets.
    """
    kind = (data or {}).get("kind")
    path = (data or {}).get("path")
    if kind == "personal":
        return Personal()
    if kind == "secondary_personal":
        return SecondaryPersonal()
    if kind == "legacy_command":
        return LegacyCommand(path=str(library.roots.legacy_commands))
    if kind in ("project", "secondary_project"):
        if not isinstance(path, str) or not path:
            raise ValueError(f"location kind '{kind}' requires a 'path'")
        project = str(normalize_path(path, Path(".")))
        return Project(path=project) if kind == "project" else SecondaryProject(path=project)
    raise ValueError(f"unsupported location kind: {kind!r}")


def metadata_from_dict(data: dict[str, Any] | None, base: Metadata | None = None) -> Metadata:
    """
    function_purpose: Overlay client-supplied metadata fields onto ``base``.

    Text fields must be strings or null; the two flags must be real booleans.
    Raises ValueError for anything else.
    """
    if data is not None and not isinstance(data, dict):
        raise ValueError("metadata must be an object")
    fields = asdict(base or Metadata())
    for key, value in (data or {}).items():
        if key not in fields:
            raise ValueError(f"unknown metadata field: {key}")
        if key in _FLAG_FIELDS:
            if not isinstance(value, bool):
                raise ValueError(f"metadata field '{key}' must be true or false")
        elif value is not None and not isinstance(value, str):
            raise ValueError(f"metadata field '{key}' must be a string or null")
        fields[key] = value
    return Metadata(**fields)


def skill_summary(skill: Skill) -> dict[str, Any]:
    return {
        "name": skill.name,
        "display_name": skill.display_name,
        "description": skill.metadata.description,
        "location": location_to_dict(skill.location),
        "path": str(skill.metadata_path),
        "enabled": skill.is_enabled,
        "legacy_command": skill.is_legacy_command,
        "last_modified": skill.last_modified.isoformat(timespec="seconds"),
    }


def skill_detail(skill: Skill) -> dict[str, Any]:
    detail = skill_summary(skill)
    detail["metadata"] = asdict(skill.metadata)
    detail["body"] = skill.body
    detail["supporting_files"] = [
        {"path": f.relative_path, "size": f.size, "is_directory": f.is_directory}
        for f in skill.supporting_files
    ]
    return detail


def _find(library: SkillLibrary, name: str, location: dict[str, Any] | None) -> Skill:
    catalog = library.catalog if library.catalog.skills else library.reload()
    wanted = _location_filter(location)
    for skill in catalog:
        if skill.name != name:
            continue
        if wanted is None or _matches(skill.location, wanted):
            return skill
    raise ValueError(f"skill '{name}' not found")


def _location_filter(location: dict[str, Any] | None) -> dict[str, Any] | None:
    if not location:
        return None
    wanted = {k: v for k, v in location.items() if k in ("kind", "path", "id")}
    if isinstance(wanted.get("path"), str) and wanted["path"]:
        wanted["path"] = str(normalize_path(wanted["path"], Path(".")))
    return wanted


def _matches(location: Location, wanted: dict[str, Any]) -> bool:
    have = location_to_dict(location)
    return all(have.get(k) == v for k, v in wanted.items())


def _failure(exc: Exception) -> dict[str, Any]:
    return {"ok": False, "message": str(exc)}


# --- Tool implementations ---
def _list_impl(library: SkillLibrary) -> list[dict[str, Any]]:
    return [skill_summary(s) for s in library.reload()]


def _detail_impl(
    library: SkillLibrary, name: str, location: dict[str, Any] | None = None
) -> dict[str, Any]:
    return skill_detail(_find(library, name, location))


def _search_impl(library: SkillLibrary, query: str) -> list[dict[str, Any]]:
    return [skill_summary(s) for s in library.reload().search(query)]


def _assets_impl(
    library: SkillLibrary, name: str, location: dict[str, Any] | None = None
) -> list[dict[str, Any]]:
    return skill_detail(_find(library, name, location))["supporting_files"]


def _create_impl(
    library: SkillLibrary,
    name: str,
    location: dict[str, Any],
    body: str = "",
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    try:
        skill = library.create(
            name, metadata_from_dict(metadata), body, location_from_dict(library, location)
        )
    except (SkillStoreError, ValueError, TypeError) as exc:
        return _failure(exc)
    return {"ok": True, "message": "Skill created", "skill": skill_summary(skill) if skill else None}


def _update_impl(
    library: SkillLibrary,
    name: str,
    location: dict[str, Any] | None = None,
    body: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    try:
        skill = _find(library, name, location)
        new_metadata = metadata_from_dict(metadata, base=skill.metadata)
        updated = library.update(skill, new_metadata, skill.body if body is None else body)
    except (SkillStoreError, ValueError, TypeError) as exc:
        return _failure(exc)
    return {"ok": True, "message": "Skill updated", "skill": skill_summary(updated) if updated else None}


def _set_enabled_impl(
    library: SkillLibrary, name: str, enabled: bool, location: dict[str, Any] | None = None
) -> dict[str, Any]:
    try:
        skill = _find(library, name, location)
        updated = library.set_enabled(skill, enabled)
    except (SkillStoreError, ValueError) as exc:
        return _failure(exc)
    return {
        "ok": True,
        "message": "Skill enabled" if enabled else "Skill disabled",
        "skill": skill_summary(updated) if updated else None,
    }


def _delete_impl(
    library: SkillLibrary, name: str, location: dict[str, Any] | None = None
) -> dict[str, Any]:
    try:
        library.delete(_find(library, name, location))
    except (SkillStoreError, ValueError) as exc:
        return _failure(exc)
    return {"ok": True, "message": "Skill deleted"}


def _move_impl(
    library: SkillLibrary,
    name: str,
    target: dict[str, Any],
    location: dict[str, Any] | None = None,
) -> dict[str, Any]:
    try:
        skill = _find(library, name, location)
        moved = library.move(skill, location_from_dict(library, target))
    except (SkillStoreError, ValueError) as exc:
        return _failure(exc)
    return {"ok": True, "message": "Skill moved", "skill": skill_summary(moved) if moved else None}


def _import_impl(
    library: SkillLibrary, source: str, location: dict[str, Any], name: str | None = None
) -> dict[str, Any]:
    try:
        package = library.preview_import(Path(source))
        skill = library.import_package(
            package, name or package.name, location_from_dict(library, location)
        )
    except (SkillStoreError, ValueError) as exc:
        return _failure(exc)
    return {"ok": True, "message": "Skill imported", "skill": skill_summary(skill) if skill else None}


def _export_impl(
    library: SkillLibrary, name: str, destination: str, location: dict[str, Any] | None = None
) -> dict[str, Any]:
    try:
        path = library.export(_find(library, name, location), Path(destination))
    except (SkillStoreError, ValueError) as exc:
        return _failure(exc)
    return {"ok": True, "message": "Skill exported", "path": str(path)}


# --- FastMCP server and tools ---
def create_server(library: SkillLibrary) -> FastMCP:
    """
    function_purpose: Build the FastMCP app with every skill tool bound to ``library``.
    """
    mcp = FastMCP(
        SERVER_NAME,
        instructions=(
            "SkillShelf MCP Server\n"
            "\n"
            "Purpose:\n"
            "- Browse and maintain AI assistant skills (SKILL.md + supporting files) stored in\n"
            "  personal, project, system, plugin and legacy command locations.\n"
            "\n"
            "Locations are passed as objects: {\"kind\": \"personal\"}, {\"kind\": \"project\", \"path\": \"/repo\"},\n"
            "{\"kind\": \"secondary_personal\"}, {\"kind\": \"secondary_project\", \"path\": \"/repo\"},\n"
            "{\"kind\": \"legacy_command\"}. System and plugin skills are read-only.\n"
            "\n"
            "Exposed tools:\n"
            "- skill_server_info(): server name, roots, monitored projects\n"
            "- skill_list_all(): every skill with location and enabled state\n"
            "- skill_get_detail(name, location?): metadata, body and supporting files\n"
            "- skill_search_index(query): match on display name and description\n"
            "- skill_list_assets(name, location?): supporting files of a skill\n"
            "- skill_create(name, location, body?, metadata?)\n"
            "- skill_update(name, location?, body?, metadata?)\n"
            "- skill_set_enabled(name, enabled, location?)\n"
            "- skill_delete(name, location?)\n"
            "- skill_move(name, target, location?)\n"
            "- skill_import(source, location, name?): folder or .zip\n"
            "- skill_export(name, destination, location?)\n"
            "\n"
            "Mutating tools return {ok, message, ...}; ok=false carries a readable reason.\n"
        ),
    )

    @mcp.tool
    def skill_server_info() -> dict[str, Any]:
        """Return server name, configured roots and monitored projects."""
        roots = library.roots
        return {
            "name": SERVER_NAME,
            "home": str(roots.home),
            "secondary_home": str(roots.secondary_home),
            "projects": [str(p) for p in library.projects],
            "transport": "stdio",
        }

    @mcp.tool
    def skill_list_all() -> list[dict[str, Any]]:
        """List every discovered skill (no body)."""
        return _list_impl(library)

    @mcp.tool
    def skill_get_detail(name: str, location: dict[str, Any] | None = None) -> dict[str, Any]:
        """Full metadata, markdown body and supporting files of one skill."""
        return _detail_impl(library, name, location)

    @mcp.tool
    def skill_search_index(query: str) -> list[dict[str, Any]]:
        """Case-insensitive search over display name and description."""
        return _search_impl(library, query)

    @mcp.tool
    def skill_list_assets(name: str, location: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Supporting files (everything but SKILL.md) inside a skill directory."""
        return _assets_impl(library, name, location)

    @mcp.tool
    def skill_create(
        name: str,
        location: dict[str, Any],
        body: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Create a new skill directory with a SKILL.md.

        metadata keys: display_name, description, argument_hint, disable_auto_invocation,
        user_invocable, allowed_tools, model_override, context, agent, hooks_raw.
        """
        return _create_impl(library, name, location, body, metadata)

    @mcp.tool
    def skill_update(
        name: str,
        location: dict[str, Any] | None = None,
        body: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Rewrite a skill's SKILL.md; omitted fields keep their current values."""
        return _update_impl(library, name, location, body, metadata)

    @mcp.tool
    def skill_set_enabled(
        name: str, enabled: bool, location: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Enable or disable a skill (renames SKILL.md <-> SKILL.md.disabled)."""
        return _set_enabled_impl(library, name, enabled, location)

    @mcp.tool
    def skill_delete(name: str, location: dict[str, Any] | None = None) -> dict[str, Any]:
        """Delete a writable skill directory (or legacy command file)."""
        return _delete_impl(library, name, location)

    @mcp.tool
    def skill_move(
        name: str, target: dict[str, Any], location: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Move a skill between personal and project locations of the same assistant."""
        return _move_impl(library, name, target, location)

    @mcp.tool
    def skill_import(
        source: str, location: dict[str, Any], name: str | None = None
    ) -> dict[str, Any]:
        """Import a skill folder or .zip archive into a writable location."""
        return _import_impl(library, source, location, name)

    @mcp.tool
    def skill_export(
        name: str, destination: str, location: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Copy a skill directory into destination/<name>."""
        return _export_impl(library, name, destination, location)

    return mcp


# --- Entry points ---
def _log_catalog(catalog: Catalog) -> None:
    logging.getLogger(LOGGER_NAME).info("Skills changed on disk; %d skill(s) now", len(catalog))


def run(library: SkillLibrary) -> None:
    """
    function_purpose: Start the MCP stdio server.

    - Discovers all locations
    - Arms change watching (catalog rebuilt on change)
    - Runs FastMCP stdio server until the client disconnects
    """
    library.reload()
    library.start_watching(_log_catalog)
    try:
        create_server(library).run()  # stdio transport by default
    finally:
        library.stop_watching()


def cli_main(argv: list[str] | None = None) -> None:
    """
    function_purpose: CLI for inspecting skills without starting the MCP server.

    Usage:
      python -m skillshelf --list
      python -m skillshelf --detail <NAME>
      python -m skillshelf --search "<QUERY>"
      python -m skillshelf --assets <NAME>
      python -m skillshelf --watch
    """
    import argparse
    import json
    import threading

    parser = argparse.ArgumentParser(
        prog="skillshelf",
        description="Inspect AI assistant skills on disk or start the stdio MCP server.",
    )
    parser.add_argument("--list", action="store_true", help="List all discovered skills and exit")
    parser.add_argument("--detail", metavar="NAME", help="Show full details for a skill")
    parser.add_argument("--search", metavar="QUERY", help="Search skills by substring")
    parser.add_argument("--assets", metavar="NAME", help="List supporting files inside the skill")
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Print the catalog size every time skills change on disk (Ctrl-C to stop)",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start MCP stdio server (default when no flags used)",
    )
    args = parser.parse_args(argv)

    settings = load_settings()
    logger = configure_logging(settings.log_file)
    library = SkillLibrary(settings)

    def dump(payload: Any) -> None:
        print(json.dumps(payload, indent=2, ensure_ascii=False))

    if args.list:
        logger.info("Listing skills...")
        dump(_list_impl(library))
        return

    if args.detail:
        logger.info("Detail for skill: %s", args.detail)
        dump(_detail_impl(library, args.detail))
        return

    if args.search:
        logger.info("Search query: %s", args.search)
        dump(_search_impl(library, args.search))
        return

    if args.assets:
        logger.info("Listing assets for skill: %s", args.assets)
        dump(_assets_impl(library, args.assets))
        return

    if args.watch:
        library.reload()
        watched = library.start_watching(lambda c: print(f"changed: {len(c)} skill(s)", flush=True))
        logger.info("Watching: %s", ", ".join(str(p) for p in watched) or "(nothing)")
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            pass
        finally:
            library.stop_watching()
        return

    # Default: start server
    run(library)


if __name__ == "__main__":
    cli_main()
