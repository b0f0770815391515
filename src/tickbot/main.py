"""CLI for inspecting configuration, failure rules and the action journal."""

from __future__ import annotations

from pathlib import Path

import typer
from rich import print

from tickbot.classifier import ClassifierConfigError, FailureClassifier
from tickbot.config import settings
from tickbot.journal import JsonlActionJournal
from tickbot.telemetry import configure_logging

app = typer.Typer(help="tickbot porcelain tools")


def _load_classifier(rules_file: str | None) -> FailureClassifier:
    path = rules_file or settings.classifier_rules_path
    if not path:
        return FailureClassifier()
    try:
        return FailureClassifier.from_file(path)
    except ClassifierConfigError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)


@app.callback()
def main(log_level: str = typer.Option(None, help="Logging level for tickbot loggers")) -> None:
    configure_logging(log_level or settings.log_level)


@app.command("settings")
def show_settings() -> None:
    """Show effective timing and path-planning configuration."""
    print(settings.model_dump())


@app.command()
def rules(
    action: str = typer.Option(None, help="Only show rules for this action"),
    rules_file: str = typer.Option(None, help="JSON rules file merged over the defaults"),
) -> None:
    """Dump the chat-message failure rules."""
    classifier = _load_classifier(rules_file)
    payload = classifier.rules.model_dump(mode="json")["actions"]
    if action:
        payload = {action: payload.get(action, [])}
    print(payload)


@app.command()
def classify(
    text: str,
    action: str = typer.Option(..., help="Action whose rules apply, e.g. attack or sell"),
    rules_file: str = typer.Option(None, help="JSON rules file merged over the defaults"),
) -> None:
    """Classify one chat message as an action would."""
    rule = _load_classifier(rules_file).classify_text(action, text)
    if rule is None:
        print({"action": action, "reason": None})
        raise typer.Exit(code=1)
    print({"action": action, "reason": rule.reason.value})


@app.command()
def journal(
    path: str = typer.Option(None, help="JSONL journal file"),
    limit: int = typer.Option(20, help="How many records to show"),
) -> None:
    """Show the newest recorded actions."""
    journal_path = path or settings.journal_path
    if not journal_path:
        raise typer.BadParameter("Provide --path or set TICKBOT_JOURNAL_PATH")

    records = JsonlActionJournal(Path(journal_path)).list_recent(limit)
    print(
        [
            {
                "action": record.action,
                "success": record.success,
                "reason": record.reason,
                "message": record.message,
                "tick": record.tick,
            }
            for record in records
        ]
    )


if __name__ == "__main__":
    app()
