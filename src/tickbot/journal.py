"""Records of finished porcelain actions, kept in memory or appended to JSONL."""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from tickbot.results import ActionResult
from tickbot.telemetry import Telemetry


@dataclass(slots=True)
class ActionRecord:
    """One verified action and how it ended."""

    id: str
    action: str
    success: bool
    message: str
    reason: str | None
    tick: int | None
    recorded_at: datetime

    @classmethod
    def from_result(cls, action: str, result: ActionResult, tick: int | None) -> ActionRecord:
        return cls(
            id=uuid4().hex,
            action=action,
            success=result.success,
            message=result.message,
            reason=result.reason.value if result.reason else None,
            tick=tick,
            recorded_at=datetime.now(timezone.utc),
        )


class ActionJournal(Protocol):
    """Persistence contract for action records."""

    def append(self, record: ActionRecord) -> None:
        """Persist a finished action record."""

    def list_recent(self, limit: int) -> list[ActionRecord]:
        """Return up to ``limit`` newest records."""


class InMemoryActionJournal:
    """Bounded in-memory journal."""

    def __init__(self, max_records: int = 1_000) -> None:
        self._records: deque[ActionRecord] = deque(maxlen=max_records)

    def append(self, record: ActionRecord) -> None:
        self._records.appendleft(record)

    def list_recent(self, limit: int) -> list[ActionRecord]:
        return list(self._records)[:limit]


class JsonlActionJournal:
    """Append-only JSONL journal."""

    def __init__(self, file_path: str | Path) -> None:
        self._path = Path(file_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: ActionRecord) -> None:
        payload = asdict(record)
        payload["recorded_at"] = record.recorded_at.isoformat()
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload) + "\n")

    def list_recent(self, limit: int) -> list[ActionRecord]:
        if not self._path.exists():
            return []

        records: list[ActionRecord] = []
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue
                payload = json.loads(line)
                records.append(
                    ActionRecord(
                        id=payload["id"],
                        action=payload["action"],
                        success=payload["success"],
                        message=payload["message"],
                        reason=payload.get("reason"),
                        tick=payload.get("tick"),
                        recorded_at=datetime.fromisoformat(payload["recorded_at"]),
                    )
                )

        records.reverse()
        return records[:limit]


class ActionReporter:
    """Logs each finished action and appends it to the journal.

    A ``Telemetry`` sink, when given, receives one ``action_finished`` event per action.
    """

    def __init__(
        self,
        journal: ActionJournal | None = None,
        telemetry: Telemetry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._journal = journal or InMemoryActionJournal()
        self._telemetry = telemetry
        self._logger = logger or logging.getLogger("tickbot.actions")

    @property
    def journal(self) -> ActionJournal:
        return self._journal

    def report(self, action: str, result: ActionResult, tick: int | None = None) -> ActionResult:
        extra = {
            "action": action,
            "reason": result.reason.value if result.reason else None,
            "result_message": result.message,
            "tick": tick,
        }
        if result.success:
            self._logger.info("action_succeeded", extra=extra)
        else:
            self._logger.warning("action_failed", extra=extra)
        self._journal.append(ActionRecord.from_result(action, result, tick))
        if self._telemetry is not None:
            self._telemetry.emit("action_finished", {**extra, "success": result.success})
        return result
