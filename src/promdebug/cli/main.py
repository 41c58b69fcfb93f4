"""CLI entry point."""

from __future__ import annotations

import sys
from collections.abc import Sequence

from typer.main import get_command

from promdebug.cli.app import app

_CLI_PROG_NAME = "promdebug"


def main(argv: Sequence[str] | None = None) -> None:
    """Run the Typer application.

    Parameters
    ----------
    argv:
        Optional list of arguments to pass to Typer. When ``None`` the
        process arguments are used.
    """

    args = list(sys.argv[1:] if argv is None else argv)
    command = get_command(app)
    command.main(args=args, prog_name=_CLI_PROG_NAME)


if __name__ == "__main__":
    main()
