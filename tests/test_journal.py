from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tickbot.journal import ActionReporter, InMemoryActionJournal, JsonlActionJournal
from tickbot.results import ActionResult, FailureReason


def test_jsonl_journal_roundtrip(tmp_path: Path) -> None:
    journal = JsonlActionJournal(tmp_path / "journal" / "actions.jsonl")
    reporter = ActionReporter(journal=journal)

    reporter.report("pickup", ActionResult.ok("Picked up Coins"), tick=12)
    reporter.report("attack", ActionResult.fail(FailureReason.OUT_OF_REACH, "Cannot reach Goblin"), tick=15)

    recent = journal.list_recent(limit=5)
    assert [record.action for record in recent] == ["attack", "pickup"]
    assert recent[0].reason == "out_of_reach"
    assert recent[0].tick == 15
    assert recent[1].success is True


def test_in_memory_journal_is_bounded() -> None:
    journal = InMemoryActionJournal(max_records=2)
    reporter = ActionReporter(journal=journal)

    for tick in range(3):
        reporter.report("drop", ActionResult.ok("Dropped Logs"), tick=tick)

    assert [record.tick for record in journal.list_recent(10)] == [2, 1]


def test_reporter_logs_failures_as_warnings(caplog: pytest.LogCaptureFixture) -> None:
    reporter = ActionReporter()

    with caplog.at_level(logging.INFO, logger="tickbot.actions"):
        result = ActionResult.fail(FailureReason.TIMEOUT, "Timed out")
        assert reporter.report("chop", result, tick=3) is result

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.getMessage() == "action_failed"
    assert record.action == "chop"
    assert record.reason == "timeout"


def test_missing_jsonl_file_reads_empty(tmp_path: Path) -> None:
    assert JsonlActionJournal(tmp_path / "none.jsonl").list_recent(5) == []


class RecordingTelemetry:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def emit(self, event_name: str, payload: dict) -> None:
        self.events.append((event_name, payload))


def test_reporter_forwards_outcomes_to_telemetry() -> None:
    telemetry = RecordingTelemetry()
    reporter = ActionReporter(telemetry=telemetry)

    reporter.report("sell", ActionResult.fail(FailureReason.NOT_TRADEABLE, "Logs is not tradeable"), tick=9)

    assert telemetry.events == [
        (
            "action_finished",
            {
                "action": "sell",
                "reason": "not_tradeable",
                "result_message": "Logs is not tradeable",
                "tick": 9,
                "success": False,
            },
        )
    ]
