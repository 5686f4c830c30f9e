"""Progress store: every chapter's question states under one durable key."""
import logging
from typing import Callable, Iterable, Optional

from leitner_tutor import leitner
from leitner_tutor.config import PROGRESS_KEY
from leitner_tutor.errors import MalformedStateError
from leitner_tutor.leitner import now_ms
from leitner_tutor.models import (
    AllProgress, ChapterProgress, ChapterStats, QuestionState,
    progress_from_dict, progress_to_dict,
)
from leitner_tutor.notify import format_answer, format_highlight, format_reset
from leitner_tutor.stats import compute_stats
from leitner_tutor.storage import KeyValueStore

logger = logging.getLogger(__name__)


class ProgressStore:
    """Reads, transitions and persists question states.

    Each mutation builds a fresh chapter dict and a fresh top-level dict and
    writes the whole structure back with a single ``kv.set``. Nothing is
    mutated in place, so ``old is not new`` after every change. Concurrent
    writers are not merged: whoever writes last wins.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        key: str = PROGRESS_KEY,
        defaults: Optional[AllProgress] = None,
        clock: Callable[[], int] = now_ms,
        notifier=None,
    ):
        self.kv = kv
        self.key = key
        self.clock = clock
        self.notifier = notifier
        self._defaults = dict(defaults or {})
        self._observers: list[Callable[[AllProgress], None]] = []
        self._progress: AllProgress = self._load()
        self._unsubscribe_kv = kv.subscribe(key, self._on_external_change)

    # --- persistence -----------------------------------------------------

    def _parse(self, raw) -> AllProgress:
        try:
            persisted = progress_from_dict(raw)
        except MalformedStateError as e:
            logger.warning("Discarding malformed progress under %s: %s", self.key, e)
            persisted = {}
        # persisted chapters win over defaults; defaults are never written here
        return {**self._defaults, **persisted}

    def _load(self) -> AllProgress:
        try:
            raw = self.kv.get(self.key)
        except MalformedStateError as e:
            logger.warning("Discarding unreadable progress under %s: %s", self.key, e)
            raw = None
        return self._parse(raw)

    def _commit(self, progress: AllProgress) -> None:
        self.kv.set(self.key, progress_to_dict(progress))
        self._progress = progress
        self._emit()

    def _emit(self) -> None:
        for callback in list(self._observers):
            try:
                callback(self._progress)
            except Exception:
                logger.exception("Progress observer failed")

    def _on_external_change(self, raw) -> None:
        logger.info("Progress changed elsewhere, reloading %s", self.key)
        self._progress = self._parse(raw)
        self._emit()

    def _notify(self, text: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send(text)
        except Exception as e:
            logger.debug("Notification dropped: %s", e)

    def refresh(self) -> AllProgress:
        """Re-read the persisted structure, discarding the in-memory copy."""
        self._progress = self._load()
        self._emit()
        return self._progress

    def sync(self) -> bool:
        """Pick up writes made by other store instances. Returns True if anything changed."""
        return self.key in self.kv.poll()

    def subscribe(self, callback: Callable[[AllProgress], None]) -> Callable[[], None]:
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def close(self) -> None:
        self._unsubscribe_kv()
        self._observers.clear()

    # --- reads -----------------------------------------------------------

    @property
    def progress(self) -> AllProgress:
        return self._progress

    def state(self, chapter_id: str) -> ChapterProgress:
        return dict(self._progress.get(chapter_id, {}))

    def get(self, chapter_id: str, question_id: str) -> Optional[QuestionState]:
        return self._progress.get(chapter_id, {}).get(question_id)

    def entries_for(self, chapter_id: str, ids: Iterable[str]) -> list[tuple[str, QuestionState]]:
        """Stored (id, state) pairs whose id is still in ``ids``."""
        valid = set(ids or ())
        chapter = self._progress.get(chapter_id, {})
        return [(qid, state) for qid, state in chapter.items() if qid in valid]

    def stats_for(self, chapter_id: str, ids: Iterable[str], total: Optional[int] = None) -> ChapterStats:
        ids = list(ids or ())
        if total is None:
            total = len(ids)
        return compute_stats(self.entries_for(chapter_id, ids), total, self.clock())

    def due_ids(self, chapter_id: str, ids: Optional[Iterable[str]] = None) -> list[str]:
        now = self.clock()
        chapter = self._progress.get(chapter_id, {})
        valid = None if ids is None else set(ids)
        return [
            qid for qid, state in chapter.items()
            if (valid is None or qid in valid) and leitner.is_due(state, now)
        ]

    # --- transitions -----------------------------------------------------

    def _apply(self, chapter_id: str, question_id: str, transition) -> QuestionState:
        prev = self._progress
        chapter = prev.get(chapter_id, {})
        new_state = transition(chapter.get(question_id), self.clock())
        self._commit({**prev, chapter_id: {**chapter, question_id: new_state}})
        return new_state

    def record(
        self,
        chapter_id: str,
        question_id: str,
        correct: bool,
        chosen: Optional[int] = None,
        text: Optional[str] = None,
    ) -> QuestionState:
        state = self._apply(
            chapter_id, question_id,
            lambda prior, now: leitner.record(prior, correct, now, chosen=chosen, text=text),
        )
        logger.debug("%s/%s recorded %s -> box %d", chapter_id, question_id, correct, state.box)
        self._notify(format_answer(question_id, correct, chosen=chosen, text=text))
        return state

    def mark_revealed(self, chapter_id: str, question_id: str) -> QuestionState:
        return self._apply(chapter_id, question_id, leitner.mark_revealed)

    def toggle_highlight(self, chapter_id: str, question_id: str) -> QuestionState:
        state = self._apply(chapter_id, question_id, leitner.toggle_highlight)
        self._notify(format_highlight(question_id, state.highlight))
        return state

    def reset(self, chapter_id: str, question_id: str) -> bool:
        """Forget a question entirely. Returns False if it was untouched."""
        prev = self._progress
        chapter = prev.get(chapter_id, {})
        if question_id not in chapter:
            return False
        rest = {qid: state for qid, state in chapter.items() if qid != question_id}
        self._commit({**prev, chapter_id: rest})
        self._notify(format_reset(question_id))
        return True

    def reconcile(self, chapter_id: str, valid_ids: Optional[Iterable[str]]) -> set[str]:
        """Drop stored states for ids no longer in the chapter. Returns the dropped ids."""
        if valid_ids is None:
            logger.warning("Reconciling %s without an id set; all its progress is dropped", chapter_id)
            valid_ids = ()
        prev = self._progress
        chapter = prev.get(chapter_id, {})
        kept = leitner.prune(chapter, valid_ids)
        removed = set(chapter) - set(kept)
        if removed:
            logger.info("Pruned %d stale question(s) from %s", len(removed), chapter_id)
            self._commit({**prev, chapter_id: kept})
        return removed
