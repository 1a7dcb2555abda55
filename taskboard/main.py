from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path

from taskboard.domain.errors import RecurrenceError
from taskboard.domain.recurrence import RecurrenceRule
from taskboard.infra.db import init_db
from taskboard.infra.logging import setup_logging
from taskboard.infra.repository import TaskRepository
from taskboard.services.evaluator import next_due_date
from taskboard.services.orchestrator import CompletionOrchestrator
from taskboard.services.task_service import TaskService

logger = logging.getLogger("taskboard")


def _read_json(path: str) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _print_outcome(outcome) -> None:
    if outcome is None:
        print("task is not recurring; nothing generated")
        return
    line = outcome.kind.value
    if outcome.new_task_id:
        line += f" {outcome.new_task_id} due {outcome.next_due_date.isoformat()}"
        if outcome.resumed:
            line += " (resumed)"
    print(line)


def cmd_complete(args: argparse.Namespace) -> int:
    init_db()
    service = TaskService(TaskRepository())
    _print_outcome(service.complete_task(args.task_id, args.user))
    return 0


def cmd_handle_event(args: argparse.Namespace) -> int:
    init_db()
    orchestrator = CompletionOrchestrator(TaskRepository())
    _print_outcome(orchestrator.handle(_read_json(args.event)))
    return 0


def cmd_next(args: argparse.Namespace) -> int:
    rule = RecurrenceRule.from_dict(_read_json(args.rule))
    completed = date.fromisoformat(args.completed)
    now = date.fromisoformat(args.today) if args.today else datetime.now(timezone.utc)
    result = next_due_date(rule, completed, now)
    print(f"{rule.describe()}: {result.isoformat() if result else 'no next occurrence'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskboard", description="Recurring task engine")
    sub = parser.add_subparsers(dest="command", required=True)

    complete = sub.add_parser("complete", help="complete a task and generate its next occurrence")
    complete.add_argument("task_id")
    complete.add_argument("--user", default=None, help="id of the completing user")
    complete.set_defaults(func=cmd_complete)

    handle = sub.add_parser("handle-event", help="run a completion event payload (JSON file)")
    handle.add_argument("event")
    handle.set_defaults(func=cmd_handle_event)

    preview = sub.add_parser("next", help="preview the next due date of a rule (JSON file)")
    preview.add_argument("rule")
    preview.add_argument("completed", help="completed due date, YYYY-MM-DD")
    preview.add_argument("--today", default=None, help="reference date, YYYY-MM-DD")
    preview.set_defaults(func=cmd_next)

    return parser


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except RecurrenceError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
