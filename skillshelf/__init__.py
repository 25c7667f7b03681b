"""
skillshelf: a record store for AI assistant skills kept as directories on disk.

This package parses and writes skill documents (YAML frontmatter + markdown body),
maps storage locations to base paths, discovers skills across locations, applies
path-safe mutations, watches locations for changes and exposes the result through
a FastMCP stdio server.
"""

__version__: str = "0.1.0"


def version() -> str:
    return __version__


__all__: list[str] = ["__version__", "version"]
