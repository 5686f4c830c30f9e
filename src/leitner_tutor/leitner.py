"""Leitner state transitions for a single question.

Every function returns a new QuestionState and leaves its input alone, so
observers can detect changes by identity or equality.
"""
import time
from dataclasses import replace
from typing import Iterable, Optional

from leitner_tutor.intervals import MAX_BOX, next_due
from leitner_tutor.models import ChapterProgress, LogEntry, QuestionState


def now_ms() -> int:
    return int(time.time() * 1000)


def ensure(prior: Optional[QuestionState], now: int) -> QuestionState:
    """Default state for a question touched for the first time."""
    if prior is not None:
        return prior
    return QuestionState(box=0, next=now, log=(), revealed=False)


def record(
    prior: Optional[QuestionState],
    correct: bool,
    now: int,
    chosen: Optional[int] = None,
    text: Optional[str] = None,
) -> QuestionState:
    """Record a graded answer. A wrong answer always drops back to box 0."""
    state = ensure(prior, now)
    box = min(state.box + 1, MAX_BOX) if correct else 0
    return replace(
        state,
        box=box,
        next=next_due(box, now),
        log=state.log + (LogEntry(t=now, ok=bool(correct)),),
        revealed=True,
        revealed_at=now,
        last_chosen=chosen if chosen is not None else state.last_chosen,
        last_text=text if text is not None else state.last_text,
    )


def mark_revealed(prior: Optional[QuestionState], now: int) -> QuestionState:
    """Answer shown without a graded response; scheduling is untouched."""
    return replace(ensure(prior, now), revealed=True, revealed_at=now)


def toggle_highlight(prior: Optional[QuestionState], now: int) -> QuestionState:
    state = ensure(prior, now)
    return replace(state, highlight=not state.highlight)


def is_due(state: QuestionState, now: int) -> bool:
    return now >= state.next


def is_wrong(state: QuestionState) -> bool:
    return bool(state.log) and not state.log[-1].ok


def last_activity(state: QuestionState) -> int:
    times = [entry.t for entry in state.log]
    if state.revealed_at is not None:
        times.append(state.revealed_at)
    return max(times, default=0)


def prune(chapter: ChapterProgress, valid_ids: Iterable[str]) -> ChapterProgress:
    """Drop entries whose id is not in valid_ids. Never adds entries."""
    valid = set(valid_ids)
    return {qid: state for qid, state in chapter.items() if qid in valid}
