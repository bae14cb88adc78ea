"""CLI parser behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from reforge import cli
from reforge.cli import _build_parser
from reforge.models import ReimplementedFile, SourceFile
from reforge.progress import RunState, SessionState


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "run", "https://github.com/octo/demo"])
    assert args.verbose is True
    assert args.command == "run"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["run", "https://github.com/octo/demo", "--verbose"])
    assert args.verbose is True
    assert args.url == "https://github.com/octo/demo"


def test_cli_run_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["run", "https://github.com/octo/demo", "--token", "ghp_x", "--output", "dist"]
    )
    assert args.token == "ghp_x"
    assert args.output == Path("dist")
    assert args.config is None
    assert args.report is None


def test_cli_serve_defaults() -> None:
    parser = _build_parser()
    args = parser.parse_args(["serve"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8000


def test_cli_requires_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


class _StubOrchestrator:
    def __init__(self, state: SessionState) -> None:
        self.state = state
        self.calls: list[tuple[str, str | None]] = []

    def run(self, url: str, token: str | None = None) -> SessionState:
        self.calls.append((url, token))
        return self.state

    def export_archive(self, directory: Path | None = None) -> Path:
        target = (directory or Path.cwd()) / "demo.zip"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"zip")
        return target


def _install_stub(monkeypatch: pytest.MonkeyPatch, state: SessionState) -> _StubOrchestrator:
    stub = _StubOrchestrator(state)
    monkeypatch.setattr(cli, "Orchestrator", lambda config: stub)
    return stub


def test_run_command_writes_archive_and_report(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    state = SessionState(
        run_state=RunState.REIMPLEMENTED,
        selected_files=(SourceFile(path="a.py", content="x"),),
        analysis="# Report\n",
        reimplemented_files=(ReimplementedFile(path="a.ts", content="y"),),
    )
    stub = _install_stub(monkeypatch, state)
    parser = _build_parser()
    args = parser.parse_args(
        [
            "run",
            "https://github.com/octo/demo",
            "--token",
            "ghp_x",
            "--config",
            str(tmp_path),
            "--output",
            str(tmp_path / "dist"),
            "--report",
            str(tmp_path / "report.md"),
        ]
    )

    cli._run(parser, args)

    assert stub.calls == [("https://github.com/octo/demo", "ghp_x")]
    assert (tmp_path / "dist" / "demo.zip").read_bytes() == b"zip"
    assert (tmp_path / "report.md").read_text(encoding="utf-8") == "# Report\n"
    output = capsys.readouterr().out
    assert "Re-implemented 1 files from 1 selected" in output
    assert "demo.zip" in output


def test_run_command_exits_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    state = SessionState(run_state=RunState.ERROR, error_message="Invalid URL provided.")
    _install_stub(monkeypatch, state)
    parser = _build_parser()
    args = parser.parse_args(["run", "not-a-url", "--config", str(tmp_path)])

    with pytest.raises(SystemExit) as excinfo:
        cli._run(parser, args)

    assert excinfo.value.code == 1
    assert "reforge run failed: Invalid URL provided." in capsys.readouterr().err


def test_run_command_reports_bad_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / ".reforge.yml").write_text("[1, 2", encoding="utf-8")
    parser = _build_parser()
    args = parser.parse_args(["run", "https://github.com/octo/demo", "--config", str(tmp_path)])

    with pytest.raises(SystemExit) as excinfo:
        cli._run(parser, args)

    assert excinfo.value.code == 1
    assert "Failed to parse .reforge.yml" in capsys.readouterr().err


def test_cli_accepts_log_file_before_or_after_command() -> None:
    parser = _build_parser()

    before = parser.parse_args(["--log-file", "run.log", "serve"])
    after = parser.parse_args(["run", "https://github.com/octo/demo", "--log-file", "run.log"])
    absent = parser.parse_args(["serve"])

    assert before.log_file == Path("run.log")
    assert after.log_file == Path("run.log")
    assert absent.log_file is None


def test_main_passes_log_file_to_logging_and_starts_service(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    logging_calls: list[dict[str, object]] = []
    served: list[tuple[str, int]] = []
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: logging_calls.append(kwargs))
    monkeypatch.setattr(
        "reforge.service.run_service", lambda host, port: served.append((host, port))
    )

    cli.main(["serve", "--verbose", "--log-file", str(tmp_path / "serve.log"), "--port", "9000"])

    assert logging_calls == [{"verbose": True, "log_file": tmp_path / "serve.log"}]
    assert served == [("127.0.0.1", 9000)]
