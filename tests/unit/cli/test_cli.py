"""Unit tests for the buglog CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from buglog.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BUGLOG_CONFIG", raising=False)
    return tmp_path


@pytest.mark.unit
@pytest.mark.cli
class TestEmit:
    """Tests for `buglog emit`."""

    def test_emits_event(self) -> None:
        result = runner.invoke(app, ["emit", "deploy", "service=api", "replicas=3", "dry-run=true"])

        assert result.exit_code == 0
        assert result.stdout == '{"at":"deploy","dry-run":true,"replicas":3,"service":"api"}\n'

    def test_no_tags(self) -> None:
        result = runner.invoke(app, ["emit", "ping"])

        assert result.exit_code == 0
        assert result.stdout == '{"at":"ping"}\n'

    def test_values_parsed_as_json_when_valid(self) -> None:
        result = runner.invoke(app, ["emit", "e", 'list=[1,"a"]', "text=hello world", "empty=", "eq=a=b"])

        assert json.loads(result.stdout) == {
            "at": "e",
            "list": [1, "a"],
            "text": "hello world",
            "empty": "",
            "eq": "a=b",
        }

    def test_malformed_tag_rejected(self) -> None:
        result = runner.invoke(app, ["emit", "e", "novalue"])

        assert result.exit_code == 2
        assert "expected KEY=VALUE" in result.output

    def test_empty_key_rejected(self) -> None:
        result = runner.invoke(app, ["emit", "e", "=value"])

        assert result.exit_code == 2

    def test_config_output_file(self, isolated: Path) -> None:
        target = isolated / "events.jsonl"
        config = isolated / "buglog.yaml"
        config.write_text(f"output: {target}\n")

        result = runner.invoke(app, ["emit", "--config", str(config), "saved", "k=1"])

        assert result.exit_code == 0
        assert result.stdout == ""
        assert target.read_text(encoding="utf-8") == '{"at":"saved","k":1}\n'

    def test_missing_config_fails(self, isolated: Path) -> None:
        result = runner.invoke(app, ["emit", "--config", str(isolated / "nope.yaml"), "e"])

        assert result.exit_code == 1
        assert "Config file not found" in result.output


@pytest.mark.unit
@pytest.mark.cli
class TestVersion:
    """Tests for `buglog --version`."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert result.stdout.startswith("buglog ")


@pytest.mark.unit
@pytest.mark.cli
class TestEmitResources:
    """Tests for resource handling in `buglog emit`."""

    def test_output_file_closed_after_emit(self, isolated: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from buglog import cli
        from buglog.logger import Logger

        built: list[Logger] = []
        build = Logger.from_config

        def recording(settings, now=None):
            logger = build(settings, now=now)
            built.append(logger)
            return logger

        monkeypatch.setattr(cli.Logger, "from_config", recording)
        config = isolated / "buglog.yaml"
        config.write_text(f"output: {isolated / 'events.jsonl'}\n")

        result = runner.invoke(app, ["emit", "closed", "k=1"])

        assert result.exit_code == 0
        (logger,) = built
        assert logger.writer.sink.closed
