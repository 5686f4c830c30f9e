"""Leitner box interval table."""

BOX_INTERVALS = (0, 1, 3, 7, 14, 30)  # days
MAX_BOX = len(BOX_INTERVALS) - 1
DAY_MS = 86_400_000


def clamp_box(box: int) -> int:
    return min(max(box, 0), MAX_BOX)


def interval_days(box: int) -> int:
    """Days until a question in ``box`` is due again. Out-of-range boxes are clamped."""
    return BOX_INTERVALS[clamp_box(box)]


def next_due(box: int, now: int) -> int:
    return now + interval_days(box) * DAY_MS
