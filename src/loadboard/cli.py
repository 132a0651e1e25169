"""``loadboard`` console entry point.

Three commands share one config/logging preamble::

    loadboard dashboard                     # PyQt6 desktop UI
    loadboard serve --port 3001             # FastAPI backend under uvicorn
    loadboard render-run run.json --out x.png
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable

from .config import AppConfig, load_app_config
from .contracts.error import BadInputError, PolicyError, guard_cli
from .core.replay import DEFAULT_STEPS, RunDescriptor

logger = logging.getLogger("loadboard")
logger.setLevel(logging.INFO)
logger.propagate = False

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
LOG_ROTATE_BYTES = 5_000_000
LOG_BACKUPS = 5

# LogRecord attributes copied into JSON lines when a caller passes them via ``extra=``
_CONTEXT_FIELDS = ("run_id", "feed", "endpoint")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ``{ts, level, logger, msg}`` plus any context and traceback."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, TIMESTAMP_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({name: getattr(record, name) for name in _CONTEXT_FIELDS if hasattr(record, name)})
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    level: str = "INFO",
    max_bytes: int = LOG_ROTATE_BYTES,
    backup_count: int = LOG_BACKUPS,
) -> None:
    """(Re)install handlers on the ``loadboard`` logger; calling again replaces them."""

    formatter = JsonFormatter() if use_json else logging.Formatter(TEXT_FORMAT, TIMESTAMP_FORMAT)
    while logger.handlers:
        stale = logger.handlers[0]
        logger.removeHandler(stale)
        with contextlib.suppress(Exception):
            stale.close()

    targets: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        targets.append(RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count))
    for target in targets:
        target.setFormatter(formatter)
        logger.addHandler(target)
    logger.setLevel(level.upper())


def read_descriptor(path: str) -> RunDescriptor:
    """Load a run descriptor JSON file; a missing file propagates ``FileNotFoundError``."""

    text = Path(path).read_text(encoding="utf-8")
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BadInputError(f"Descriptor {path} is not valid JSON: {exc}") from exc
    return RunDescriptor.from_mapping(raw)


Handler = Callable[[argparse.Namespace, AppConfig], int]
Configure = Callable[[argparse.ArgumentParser], None]

_COMMANDS: dict[str, tuple[str, Configure, Handler]] = {}


def _no_arguments(parser: argparse.ArgumentParser) -> None:
    return None


def command(name: str, summary: str, arguments: Configure = _no_arguments) -> Callable[[Handler], Handler]:
    """Register a subcommand; ``arguments`` adds its options to the subparser."""

    def register(handler: Handler) -> Handler:
        _COMMANDS[name] = (summary, arguments, handler)
        return handler

    return register


def _serve_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", default=None, help="Interface to bind (default: backend.host)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: backend.port)")
    parser.add_argument("--log-level", default="info", help="Uvicorn log level (default: %(default)s)")


def _render_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("descriptor", help="JSON run descriptor (as returned by /api/tests/history/{id})")
    parser.add_argument("--out", required=True, help="Output PNG path")
    parser.add_argument("--group", default="response_times", help="Chart group key (default: %(default)s)")
    parser.add_argument("--width", type=int, default=960)
    parser.add_argument("--height", type=int, default=400)
    parser.add_argument("--steps", type=int, default=DEFAULT_STEPS, help="Synthetic samples (default: %(default)s)")


@command("dashboard", "Launch the desktop dashboard (requires PyQt6)")
def _dashboard(args: argparse.Namespace, config: AppConfig) -> int:
    from .dashboard.app import run_dashboard

    return run_dashboard([sys.argv[0]], config)


@command("serve", "Run the backend service under uvicorn", _serve_arguments)
def _serve(args: argparse.Namespace, config: AppConfig) -> int:
    import uvicorn

    from .service.api import create_app

    host = args.host or config.backend.host
    port = args.port or config.backend.port
    logger.info("Serving loadboard backend on %s:%d", host, port)
    uvicorn.run(create_app(config.service), host=host, port=port, log_level=args.log_level.lower())
    return 0


@command("render-run", "Replay a run descriptor and save one chart as PNG", _render_arguments)
def _render_run(args: argparse.Namespace, config: AppConfig) -> int:
    from .dashboard.offline import render_run

    samples = render_run(
        read_descriptor(args.descriptor),
        args.out,
        group_key=args.group,
        width=args.width,
        height=args.height,
        steps=args.steps,
    )
    print(json.dumps({"ok": True, "command": "render-run", "out": str(args.out), "samples": samples}))
    return 0


def build_parser() -> tuple[argparse.ArgumentParser, dict[str, Handler]]:
    parser = argparse.ArgumentParser(
        prog="loadboard",
        description="Load-test dashboard: live Locust and host charts, backend proxy, run replay.",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    parser.add_argument("--log-file", default=None, help="Also log to this file (rotates at 5MB, keeps 5)")
    parser.add_argument("--config", default=None, help="TOML config (defaults < file < LOADBOARD_* env)")
    subparsers = parser.add_subparsers(dest="cmd", required=True)
    handlers: dict[str, Handler] = {}
    for name, (summary, configure, handler) in _COMMANDS.items():
        sub = subparsers.add_parser(name, help=summary)
        # accepted after the subcommand too; SUPPRESS keeps the top-level value when absent
        sub.add_argument("--config", default=argparse.SUPPRESS, help="TOML config file")
        configure(sub)
        handlers[name] = handler
    return parser, handlers


@guard_cli
def main(argv: list[str] | None = None) -> int:
    parser, handlers = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_json, args.log_file)

    source = args.config or os.getenv("LOADBOARD_CONFIG")
    config = load_app_config(source)
    if source:
        logger.info("Loaded config from %s", source)

    if args.cmd not in handlers:
        raise PolicyError(f"Unknown command {args.cmd}")
    return handlers[args.cmd](args, config)


def console_main() -> Any:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    console_main()
