"""``python -m loadboard.service [--config F] [--host H] [--port P]``: same as ``loadboard serve``."""

from __future__ import annotations

import sys
from typing import Optional

from ..cli import main as cli_main


def main(argv: Optional[list[str]] = None) -> int:
    return cli_main(["serve", *(sys.argv[1:] if argv is None else argv)])


if __name__ == "__main__":  # pragma: no cover - manual execution entry point
    raise SystemExit(main())
