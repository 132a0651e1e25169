from __future__ import annotations

import contextlib
import io
import json
import logging
from pathlib import Path

import pytest

from loadboard import cli
from loadboard.contracts.error import ErrorEnvelope, Exit, InvariantError, PolicyError, guard_cli


def run_cli(argv: list[str]) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        try:
            code = cli.main(argv)
        except SystemExit as exc:
            code = exc.code if isinstance(exc.code, int) else 1
    return code, stdout.getvalue().strip(), stderr.getvalue().strip()


def parse_error(stderr: str) -> dict:
    if not stderr.strip():
        return {}
    return json.loads(stderr.splitlines()[-1])


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOADBOARD_CONFIG", raising=False)


def _descriptor(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "run.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_parser_registers_every_command() -> None:
    parser, handlers = cli.build_parser()
    assert set(handlers) == {"dashboard", "serve", "render-run"}
    args = parser.parse_args(["--log-json", "render-run", "run.json", "--out", "x.png", "--steps", "30"])
    assert args.log_json is True
    assert (args.cmd, args.steps, args.group) == ("render-run", 30, "response_times")
    serve = parser.parse_args(["serve", "--port", "8000"])
    assert serve.port == 8000
    assert serve.host is None


def test_missing_command_is_a_usage_error() -> None:
    code, _, _ = run_cli([])
    assert code == 2


def test_render_run_invalid_json_returns_badinput(tmp_path: Path) -> None:
    bad = tmp_path / "run.json"
    bad.write_text("{not json", encoding="utf-8")
    code, _, err = run_cli(["render-run", str(bad), "--out", str(tmp_path / "x.png")])
    env = parse_error(err)
    assert code == Exit.BAD_INPUT
    assert env["error"] == "BadInput"
    assert "not valid JSON" in env["detail"]


def test_render_run_missing_descriptor_returns_io(tmp_path: Path) -> None:
    code, _, err = run_cli(["render-run", str(tmp_path / "missing.json"), "--out", str(tmp_path / "x.png")])
    assert code == Exit.IO
    assert parse_error(err)["error"] == "FileNotFound"


def test_render_run_descriptor_without_start_time(tmp_path: Path) -> None:
    path = _descriptor(tmp_path, {"name": "smoke"})
    code, _, err = run_cli(["render-run", str(path), "--out", str(tmp_path / "x.png")])
    assert code == Exit.BAD_INPUT
    assert "start_time" in parse_error(err)["detail"]


def test_render_run_unknown_group_carries_hint(tmp_path: Path) -> None:
    path = _descriptor(tmp_path, {"start_time": "2024-05-01T12:00:00"})
    code, _, err = run_cli(["render-run", str(path), "--out", str(tmp_path / "x.png"), "--group", "cpu"])
    env = parse_error(err)
    assert code == Exit.BAD_INPUT
    assert "response_times" in env["hint"]


def test_render_run_rejects_tiny_images(tmp_path: Path) -> None:
    path = _descriptor(tmp_path, {"start_time": "2024-05-01T12:00:00"})
    code, _, _ = run_cli(["render-run", str(path), "--out", str(tmp_path / "x.png"), "--width", "50"])
    assert code == Exit.BAD_INPUT


def test_bad_config_returns_badinput(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.toml"
    cfg.write_text("[dashboard]\ncapacity = 0\n", encoding="utf-8")
    code, _, err = run_cli(["--config", str(cfg), "dashboard"])
    assert code == Exit.BAD_INPUT
    assert "capacity" in parse_error(err)["detail"]


def test_config_is_accepted_after_the_subcommand(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.toml"
    cfg.write_text("[dashboard]\ncapacity = 0\n", encoding="utf-8")
    code, _, err = run_cli(["dashboard", "--config", str(cfg)])
    assert code == Exit.BAD_INPUT
    assert "capacity" in parse_error(err)["detail"]

    parser, _ = cli.build_parser()
    assert parser.parse_args(["--config", "a.toml", "serve"]).config == "a.toml"
    assert parser.parse_args(["serve", "--config", "b.toml"]).config == "b.toml"


def test_json_formatter_emits_structured_records() -> None:
    record = logging.LogRecord("loadboard", logging.WARNING, __file__, 1, "hello %s", ("there",), None)
    payload = json.loads(cli.JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["msg"] == "hello there"
    assert payload["logger"] == "loadboard"


def test_configure_logging_adds_rotating_file(tmp_path: Path) -> None:
    log_file = tmp_path / "loadboard.log"
    try:
        cli.configure_logging(use_json=True, log_file=str(log_file), level="debug")
        assert len(cli.logger.handlers) == 2
        assert cli.logger.level == logging.DEBUG
        cli.logger.info("written")
        for handler in cli.logger.handlers:
            handler.flush()
        line = log_file.read_text(encoding="utf-8").splitlines()[-1]
        assert json.loads(line)["msg"] == "written"
    finally:
        cli.configure_logging()


def test_error_envelope_omits_empty_hint() -> None:
    assert json.loads(ErrorEnvelope("IO", "disk full").to_json()) == {"error": "IO", "detail": "disk full"}
    with_hint = json.loads(ErrorEnvelope("BadInput", "x", hint="try y").to_json())
    assert with_hint["hint"] == "try y"


@pytest.mark.parametrize(
    ("error", "code", "kind"),
    [
        (InvariantError("capacity must be >= 2"), Exit.INVARIANT, "Invariant"),
        (PolicyError("PyQt6 is not installed", hint="pip install PyQt6"), Exit.POLICY, "Policy"),
    ],
)
def test_guard_cli_maps_error_class_to_exit_code(
    error: Exception, code: Exit, kind: str, capsys: pytest.CaptureFixture[str]
) -> None:
    @guard_cli
    def command() -> int:
        raise error

    with pytest.raises(SystemExit) as excinfo:
        command()
    assert excinfo.value.code == int(code)
    envelope = parse_error(capsys.readouterr().err)
    assert envelope["error"] == kind
    assert envelope["detail"] == str(error)


def test_json_formatter_carries_run_context() -> None:
    record = logging.LogRecord("loadboard.dashboard", logging.INFO, __file__, 1, "replaying", (), None)
    record.run_id = 7
    payload = json.loads(cli.JsonFormatter().format(record))
    assert payload["run_id"] == 7
    assert "feed" not in payload


def test_service_module_forwards_to_serve(monkeypatch: pytest.MonkeyPatch) -> None:
    from loadboard.service import __main__ as service_main

    seen: list[list[str]] = []
    monkeypatch.setattr(service_main, "cli_main", lambda argv: seen.append(argv) or 0)
    assert service_main.main(["--port", "4000", "--config", "lb.toml"]) == 0
    assert seen == [["serve", "--port", "4000", "--config", "lb.toml"]]
