"""Chapter statistics derived from stored question states."""
import math
from typing import Iterable

from leitner_tutor.leitner import is_due, is_wrong, last_activity
from leitner_tutor.models import ChapterStats, QuestionState


def compute_stats(entries: Iterable[tuple[str, QuestionState]], total: int, now: int) -> ChapterStats:
    """Recompute every counter from scratch over (id, state) pairs.

    Revealed-but-unanswered questions count as done but never as wrong,
    since their log is empty.
    """
    done = due = wrong = star = 0
    last = 0
    for _, state in entries:
        done += 1
        if is_due(state, now):
            due += 1
        if is_wrong(state):
            wrong += 1
        if state.highlight:
            star += 1
        last = max(last, last_activity(state))
    # half-up, so 12.5% shows as 13%
    progress_pct = math.floor(done / total * 100 + 0.5) if total > 0 else 0
    return ChapterStats(
        done=done, due=due, wrong=wrong, star=star, last=last, progress_pct=progress_pct,
    )


def progress_label(pct: float) -> str:
    if pct >= 100:
        return "COMPLETE"
    elif pct >= 65:
        return "MOSTLY DONE"
    elif pct >= 30:
        return "IN PROGRESS"
    elif pct > 0:
        return "STARTED"
    return "NOT STARTED"


def progress_color(pct: float) -> str:
    if pct >= 100:
        return "green"
    elif pct >= 65:
        return "yellow"
    elif pct >= 30:
        return "dark_orange"
    return "red"
