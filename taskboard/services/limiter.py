from __future__ import annotations

from taskboard.domain.recurrence import RecurrenceRule


def should_continue(rule: RecurrenceRule, existing_occurrence_count: int) -> bool:
    """True while the series may generate another instance.

    ``existing_occurrence_count`` must come from the store (every task sharing
    the recurring group, the original included) at the time of the call.
    """
    if not rule.end_after_occurrences:
        return True
    return existing_occurrence_count < rule.end_after_occurrences
