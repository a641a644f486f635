"""CLI tests (via typer.testing.CliRunner)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fakes import data_url_for
from uibridge.cli import controller_cmd
from uibridge.cli.app import app
from uibridge.cli.controller_cmd import _parse_selector


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("uibridge ")


def test_settings_validate(runner) -> None:
    result = runner.invoke(app, ["settings", "validate"])
    assert result.exit_code == 0
    assert "Settings are valid" in result.output


def test_settings_show_is_json(runner) -> None:
    result = runner.invoke(app, ["settings", "show"])
    assert result.exit_code == 0
    assert json.loads(result.output)["bridge"]["commands"] == ["click", "screenshot", "help"]


@pytest.mark.parametrize(
    "raw,expected",
    [(None, None), ("#submit", "#submit"), ('{"text": "Go"}', {"text": "Go"}), (' {"role": "b"}', {"role": "b"})],
)
def test_parse_selector(raw, expected) -> None:
    assert _parse_selector(raw) == expected


class TestExec:
    def test_invalid_options_json(self, runner) -> None:
        result = runner.invoke(app, ["exec", "click", "--options", "{not json"])
        assert result.exit_code == 2
        assert "Invalid JSON" in result.output

    def test_prints_result(self, runner, monkeypatch) -> None:
        calls = []

        async def fake_exec(server, command, selector, options, client_id, wait, timeout):
            calls.append((server, command, selector, options, client_id, wait))
            return {"commandId": "cmd_1", "status": "completed", "result": {"success": True}}

        monkeypatch.setattr(controller_cmd, "_exec", fake_exec)
        result = runner.invoke(
            app, ["exec", "click", "-s", '{"text": "Go"}', "-o", '{"force": true}', "--server", "http://c.test"]
        )
        assert result.exit_code == 0
        assert calls == [("http://c.test", "click", {"text": "Go"}, {"force": True}, None, True)]
        assert json.loads(result.output)["status"] == "completed"

    def test_failed_command_exits_nonzero(self, runner, monkeypatch) -> None:
        async def fake_exec(*args):
            return {"commandId": "cmd_1", "status": "failed", "error": "Element not found"}

        monkeypatch.setattr(controller_cmd, "_exec", fake_exec)
        assert runner.invoke(app, ["exec", "click", "-s", "#x"]).exit_code == 1

    def test_output_writes_image(self, runner, monkeypatch, tmp_path: Path) -> None:
        async def fake_exec(*args):
            return {"status": "completed", "result": {"dataUrl": data_url_for(), "width": 1}}

        monkeypatch.setattr(controller_cmd, "_exec", fake_exec)
        target = tmp_path / "out" / "shot.png"
        result = runner.invoke(app, ["exec", "screenshot", "--output", str(target)])
        assert result.exit_code == 0
        assert target.read_bytes().startswith(b"\x89PNG")
        assert "dataUrl" not in result.output

    def test_unreachable_controller(self, runner) -> None:
        result = runner.invoke(app, ["exec", "help", "--server", "http://127.0.0.1:9", "--no-wait"])
        assert result.exit_code == 1
        assert "not reachable" in result.output


class TestStored:
    @pytest.fixture()
    def db(self, tmp_path: Path) -> Path:
        from uibridge.store.screenshot_store import ScreenshotStore

        path = tmp_path / "shots.db"
        store = ScreenshotStore(path)
        store.add(file_name="home.png", folder="run-1", data_url=data_url_for(), size=70)
        store.add(file_name="cart.png", folder=None, data_url=data_url_for(), size=70)
        return path

    def test_lists_rows(self, runner, db) -> None:
        result = runner.invoke(app, ["stored", "--db", str(db)])
        assert result.exit_code == 0
        assert "home.png" in result.output and "cart.png" in result.output

    def test_export_writes_image(self, runner, db, tmp_path: Path) -> None:
        from fakes import PNG_1PX

        target = tmp_path / "out.png"
        result = runner.invoke(app, ["stored", "--db", str(db), "--export", "1", "--output", str(target)])
        assert result.exit_code == 0
        assert target.read_bytes() == PNG_1PX

    def test_export_unknown_id(self, runner, db) -> None:
        result = runner.invoke(app, ["stored", "--db", str(db), "--export", "42"])
        assert result.exit_code == 1
        assert "No stored screenshot" in result.output

    def test_missing_store(self, runner, tmp_path: Path) -> None:
        result = runner.invoke(app, ["stored", "--db", str(tmp_path / "none.db")])
        assert result.exit_code == 1
