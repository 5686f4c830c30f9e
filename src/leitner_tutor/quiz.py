"""Answer grading and review queues for chapter questions."""
import unicodedata
from typing import Optional

from leitner_tutor.models import QuestionItem, QuestionState


def normalize_text(text: str) -> str:
    """Lowercase, strip accents and collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.lower().split())


def answer_index(answer) -> Optional[int]:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer
    if isinstance(answer, str):
        answer = answer.strip().lower()
        if answer.isdigit():
            return int(answer)
        if len(answer) == 1 and "a" <= answer <= "z":
            return ord(answer) - ord("a")
    return None


def check_answer(item: QuestionItem, chosen: Optional[int] = None, text: Optional[str] = None) -> bool:
    if item.type == "short":
        if text is None:
            return False
        accepted = item.answer if isinstance(item.answer, list) else [item.answer]
        return normalize_text(text) in {normalize_text(str(a)) for a in accepted if a is not None}
    if chosen is None:
        return False
    return chosen == answer_index(item.answer)


def answer_question(
    store, chapter_id: str, item: QuestionItem,
    chosen: Optional[int] = None, text: Optional[str] = None,
) -> tuple[bool, QuestionState]:
    """Grade an answer and record it. Short answers keep the text, MCQs the option."""
    correct = check_answer(item, chosen=chosen, text=text)
    if item.type == "short":
        state = store.record(chapter_id, item.id, correct, text=text)
    else:
        state = store.record(chapter_id, item.id, correct, chosen=chosen)
    return correct, state


def review_queue(store, chapter_id: str, items: list[QuestionItem]) -> list[QuestionItem]:
    """Due questions first, then untouched ones, each in material order."""
    due = set(store.due_ids(chapter_id, [item.id for item in items]))
    touched = store.state(chapter_id)
    due_items = [item for item in items if item.id in due]
    new_items = [item for item in items if item.id not in touched]
    return due_items + new_items
