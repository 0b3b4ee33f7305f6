"""CLI entry point for clode."""

import sys


def main() -> int:
    """Main entry point for the clode CLI."""
    from clode.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
