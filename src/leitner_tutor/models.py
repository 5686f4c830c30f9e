"""Data classes for the progress domain model."""
from dataclasses import dataclass, field
from typing import Optional

from leitner_tutor.errors import MalformedStateError
from leitner_tutor.intervals import clamp_box


@dataclass(frozen=True)
class LogEntry:
    t: int
    ok: bool


@dataclass(frozen=True)
class QuestionState:
    box: int
    next: int
    log: tuple = ()
    highlight: bool = False
    revealed: bool = False
    revealed_at: Optional[int] = None
    last_chosen: Optional[int] = None
    last_text: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "box": self.box,
            "next": self.next,
            "log": [{"t": entry.t, "ok": entry.ok} for entry in self.log],
            "highlight": self.highlight,
            "revealed": self.revealed,
        }
        if self.revealed_at is not None:
            data["revealedAt"] = self.revealed_at
        if self.last_chosen is not None:
            data["lastChosen"] = self.last_chosen
        if self.last_text is not None:
            data["lastText"] = self.last_text
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "QuestionState":
        if not isinstance(data, dict):
            raise MalformedStateError(f"question state must be an object, got {type(data).__name__}")
        try:
            log = tuple(LogEntry(t=int(e["t"]), ok=_bool(e["ok"])) for e in data.get("log") or [])
            return cls(
                box=clamp_box(int(data.get("box", 0))),
                next=int(data.get("next", 0)),
                log=log,
                highlight=_bool(data.get("highlight", False)),
                revealed=_bool(data.get("revealed", False)),
                revealed_at=_opt_int(data.get("revealedAt")),
                last_chosen=_opt_int(data.get("lastChosen")),
                last_text=data.get("lastText"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedStateError(f"bad question state: {e}") from e


def _opt_int(value) -> Optional[int]:
    return None if value is None else int(value)


def _bool(value) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a boolean, got {value!r}")
    return value


# chapter id -> question id -> state
ChapterProgress = dict
AllProgress = dict


def progress_to_dict(progress: AllProgress) -> dict:
    return {
        chapter_id: {qid: state.to_dict() for qid, state in chapter.items()}
        for chapter_id, chapter in progress.items()
    }


def progress_from_dict(data) -> AllProgress:
    """Parse the persisted shape. Raises MalformedStateError on anything unexpected."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedStateError(f"progress must be an object, got {type(data).__name__}")
    progress = {}
    for chapter_id, chapter in data.items():
        if not isinstance(chapter, dict):
            raise MalformedStateError(f"chapter {chapter_id!r} must be an object")
        progress[chapter_id] = {
            qid: QuestionState.from_dict(state) for qid, state in chapter.items()
        }
    return progress


@dataclass
class Chapter:
    id: str
    title: str
    desc: str = ""
    coverage_items: list = field(default_factory=list)


@dataclass
class QuestionItem:
    id: str
    type: str  # "mcq" or "short"
    question: str
    answer: object
    options: Optional[list] = None
    hint: Optional[str] = None
    extra: Optional[str] = None
    page: Optional[int] = None
    meta: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ChapterStats:
    done: int = 0
    due: int = 0
    wrong: int = 0
    star: int = 0
    last: int = 0
    progress_pct: int = 0
