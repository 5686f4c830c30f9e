# tests/test_material.py
import json
from unittest.mock import MagicMock, patch

import requests

from leitner_tutor.material import (
    MaterialSource, chapter_from_dict, ids_for, item_from_dict, load_and_reconcile,
)

CHAPTER_ITEMS = [
    {"id": "q1", "type": "mcq", "question": "2+2?", "options": ["3", "4"], "answer": 1, "page": 3},
    {"id": "q2", "type": "short", "question": "Capital?", "answer": "Budapest"},
]


def write_material(directory, name, data, suffix=".json"):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}{suffix}"
    if suffix == ".json":
        path.write_text(json.dumps(data), encoding="utf-8")
    else:
        path.write_text(data, encoding="utf-8")
    return path


def test_chapter_from_dict_normalizes_coverage():
    ch = chapter_from_dict({"id": 1, "title": "One", "coverage_items": "bad"})
    assert ch.id == "1"
    assert ch.coverage_items == []


def test_item_from_dict():
    item = item_from_dict(CHAPTER_ITEMS[0])
    assert item.id == "q1"
    assert item.options == ["3", "4"]
    assert item.page == 3
    assert item.meta == {}


def test_ids_for():
    assert ids_for([item_from_dict(d) for d in CHAPTER_ITEMS]) == ["q1", "q2"]


def test_fetch_chapter_from_directory(tmp_path, kv, clock):
    write_material(tmp_path / "material", "ch1", CHAPTER_ITEMS)
    source = MaterialSource(str(tmp_path / "material"), kv, clock=clock)
    items = source.fetch_chapter("ch1")
    assert [i.id for i in items] == ["q1", "q2"]
    assert source.fetched_at("ch1") == clock.now


def test_fetch_chapter_from_yaml(tmp_path, kv, clock):
    yaml_text = "- id: y1\n  type: short\n  question: Hi?\n  answer: hello\n"
    write_material(tmp_path, "ch2", yaml_text, suffix=".yaml")
    items = MaterialSource(str(tmp_path), kv, clock=clock).fetch_chapter("ch2")
    assert items[0].id == "y1"
    assert items[0].answer == "hello"


def test_fetch_chapters(tmp_path, kv, clock):
    write_material(tmp_path, "chapters", [{"id": "ch1", "title": "Basics"}, {"id": "ch2", "title": "More"}])
    chapters = MaterialSource(str(tmp_path), kv, clock=clock).fetch_chapters()
    assert [c.title for c in chapters] == ["Basics", "More"]


def test_missing_material_without_cache_returns_none(tmp_path, kv, clock):
    source = MaterialSource(str(tmp_path), kv, clock=clock)
    assert source.fetch_chapter("nope") is None
    assert source.fetch_chapters() == []


def test_failed_fetch_falls_back_to_cache(tmp_path, kv, clock):
    path = write_material(tmp_path, "ch1", CHAPTER_ITEMS)
    source = MaterialSource(str(tmp_path), kv, clock=clock)
    source.fetch_chapter("ch1")
    path.write_text("{broken", encoding="utf-8")
    items = source.fetch_chapter("ch1")
    assert [i.id for i in items] == ["q1", "q2"]


def test_non_list_document_is_rejected(tmp_path, kv, clock):
    write_material(tmp_path, "ch1", {"id": "q1"})
    assert MaterialSource(str(tmp_path), kv, clock=clock).fetch_chapter("ch1") is None


def test_remote_fetch_sends_version_and_timeout(kv, clock):
    response = MagicMock()
    response.json.return_value = CHAPTER_ITEMS
    with patch("leitner_tutor.material.requests.get", return_value=response) as get:
        source = MaterialSource("https://example.org/material/", kv, app_version="1.2", timeout=7, clock=clock)
        items = source.fetch_chapter("ch1")
    get.assert_called_once_with(
        "https://example.org/material/ch1.json", params={"ver": "1.2"}, timeout=7,
    )
    assert [i.id for i in items] == ["q1", "q2"]


def test_remote_failure_uses_cache(kv, clock):
    kv.set("material:ch1", {"data": CHAPTER_ITEMS, "fetched": 5})
    with patch("leitner_tutor.material.requests.get", side_effect=requests.Timeout("slow")):
        source = MaterialSource("https://example.org", kv, clock=clock)
        items = source.fetch_chapter("ch1")
    assert [i.id for i in items] == ["q1", "q2"]
    assert source.fetched_at("ch1") == 5


def test_load_and_reconcile_prunes_removed_questions(tmp_path, kv, store, clock):
    store.record("ch1", "q1", True)
    store.record("ch1", "old", False)
    write_material(tmp_path, "ch1", CHAPTER_ITEMS)
    items = load_and_reconcile(MaterialSource(str(tmp_path), kv, clock=clock), store, "ch1")
    assert [i.id for i in items] == ["q1", "q2"]
    assert set(store.state("ch1")) == {"q1"}


def test_load_and_reconcile_keeps_progress_when_offline(tmp_path, kv, store, clock):
    store.record("ch1", "q1", True)
    assert load_and_reconcile(MaterialSource(str(tmp_path), kv, clock=clock), store, "ch1") is None
    assert set(store.state("ch1")) == {"q1"}
