"""``python -m skillshelf``: inspect skills or serve them over stdio (see skillshelf.server)."""

from __future__ import annotations

import sys

from skillshelf.server import cli_main


def main(argv: list[str] | None = None) -> None:
    cli_main(sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    main()
