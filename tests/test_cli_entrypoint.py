from __future__ import annotations

import importlib
import json
from pathlib import Path

import pytest

from tickbot.journal import ActionReporter, JsonlActionJournal
from tickbot.results import ActionResult, FailureReason


def test_console_entrypoint_exposes_app() -> None:
    pytest.importorskip("typer")

    module = importlib.import_module("tickbot.main")

    assert hasattr(module, "app")
    assert module.app is not None


def test_classify_command_reports_reason() -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from tickbot.main import app

    result = typer_testing.CliRunner().invoke(
        app, ["classify", "You can't sell this item to this shop.", "--action", "sell"], catch_exceptions=False
    )

    assert result.exit_code == 0
    assert "not_buyable_here" in result.stdout


def test_classify_command_exits_nonzero_when_unmatched() -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from tickbot.main import app

    result = typer_testing.CliRunner().invoke(app, ["classify", "Welcome!", "--action", "attack"])

    assert result.exit_code == 1


def test_rules_command_reports_bad_file(tmp_path: Path) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from tickbot.main import app

    bad = tmp_path / "rules.json"
    bad.write_text(json.dumps({"actions": {"door": [{"reason": "nope", "any_of": ["x"]}]}}), encoding="utf-8")

    result = typer_testing.CliRunner().invoke(app, ["rules", "--rules-file", str(bad)])

    assert result.exit_code == 1
    assert "Invalid classifier rules" in result.stdout


def test_journal_command_lists_recent_records(tmp_path: Path) -> None:
    typer_testing = pytest.importorskip("typer.testing")
    from tickbot.main import app

    path = tmp_path / "actions.jsonl"
    ActionReporter(journal=JsonlActionJournal(path)).report(
        "open_bank", ActionResult.fail(FailureReason.TARGET_NOT_FOUND, "No banker"), tick=4
    )

    result = typer_testing.CliRunner().invoke(app, ["journal", "--path", str(path), "--limit", "5"])

    assert result.exit_code == 0
    assert "open_bank" in result.stdout
