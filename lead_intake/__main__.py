"""Entry point for ``python -m lead_intake``."""
from __future__ import annotations

import sys

from . import cli


def main(argv: list[str] | None = None) -> int:
    """Run the intake CLI; without a subcommand print usage and exit with 2."""

    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] == "help":
        cli.build_parser(prog="python -m lead_intake").print_help()
        return 2
    return cli.main(args)


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
