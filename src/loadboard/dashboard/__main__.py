"""Module entrypoint for `python -m loadboard.dashboard`."""

from __future__ import annotations

import sys

from .app import run_dashboard


def main() -> int:
    return run_dashboard(sys.argv)


if __name__ == "__main__":
    sys.exit(main())
