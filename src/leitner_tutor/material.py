"""Chapter material loading with a cached offline fallback."""
import json
import logging
from pathlib import Path
from typing import Callable, Optional

import requests
import yaml

from leitner_tutor.config import FETCH_TIMEOUT_SECONDS
from leitner_tutor.errors import MalformedStateError, MaterialError
from leitner_tutor.leitner import now_ms
from leitner_tutor.models import Chapter, QuestionItem
from leitner_tutor.storage import KeyValueStore

logger = logging.getLogger(__name__)

CHAPTERS_NAME = "chapters"


def read_material_file(path: Path):
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


def chapter_from_dict(data: dict) -> Chapter:
    coverage = data.get("coverage_items")
    return Chapter(
        id=str(data["id"]),
        title=data.get("title", str(data["id"])),
        desc=data.get("desc", ""),
        coverage_items=coverage if isinstance(coverage, list) else [],
    )


def item_from_dict(data: dict) -> QuestionItem:
    return QuestionItem(
        id=str(data["id"]),
        type=data.get("type", "mcq"),
        question=data.get("question", ""),
        answer=data.get("answer"),
        options=data.get("options"),
        hint=data.get("hint"),
        extra=data.get("extra"),
        page=data.get("page"),
        meta=data.get("meta") or {},
    )


def ids_for(items: list) -> list[str]:
    """The authoritative id list for a chapter's items."""
    return [item.id for item in items]


class MaterialSource:
    """Fetches ``chapters`` and ``<chapter>`` documents from a directory or URL.

    Every successful fetch is cached in the key-value store under
    ``material:<name>``; a failed fetch falls back to that cache.
    """

    def __init__(
        self,
        base: str,
        kv: KeyValueStore,
        app_version: str = "",
        timeout: int = FETCH_TIMEOUT_SECONDS,
        clock: Callable[[], int] = now_ms,
    ):
        self.base = str(base)
        self.kv = kv
        self.app_version = app_version
        self.timeout = timeout
        self.clock = clock

    @property
    def is_remote(self) -> bool:
        return self.base.startswith(("http://", "https://"))

    def _read_remote(self, name: str):
        url = f"{self.base.rstrip('/')}/{name}.json"
        try:
            response = requests.get(url, params={"ver": self.app_version}, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise MaterialError(f"fetching {url} failed: {e}") from e

    def _read_local(self, name: str):
        base = Path(self.base)
        for suffix in (".json", ".yaml", ".yml"):
            path = base / f"{name}{suffix}"
            if path.exists():
                try:
                    return read_material_file(path)
                except (OSError, ValueError, yaml.YAMLError) as e:
                    raise MaterialError(f"reading {path} failed: {e}") from e
        raise MaterialError(f"no material file for {name!r} in {base}")

    def _cache_key(self, name: str) -> str:
        return f"material:{name}"

    def _cached(self, name: str) -> Optional[dict]:
        try:
            cached = self.kv.get(self._cache_key(name))
        except MalformedStateError:
            return None
        if isinstance(cached, dict) and isinstance(cached.get("data"), list):
            return cached
        return None

    def fetch(self, name: str) -> Optional[list]:
        """Fresh copy of document ``name``, else the cached one, else None."""
        try:
            logger.info("Fetching %s", name)
            data = self._read_remote(name) if self.is_remote else self._read_local(name)
            if not isinstance(data, list):
                raise MaterialError(f"{name} must hold a list, got {type(data).__name__}")
        except MaterialError as e:
            cached = self._cached(name)
            logger.warning("Material fetch for %s failed (%s); %s", name, e,
                           "using cached copy" if cached else "no cached copy")
            return cached["data"] if cached else None
        self.kv.set(self._cache_key(name), {"data": data, "fetched": self.clock()})
        logger.info("%s fetched OK (%d records)", name, len(data))
        return data

    def fetched_at(self, name: str) -> int:
        cached = self._cached(name)
        return int(cached.get("fetched", 0)) if cached else 0

    def fetch_chapters(self) -> list[Chapter]:
        return [chapter_from_dict(d) for d in self.fetch(CHAPTERS_NAME) or [] if isinstance(d, dict)]

    def fetch_chapter(self, chapter_id: str) -> Optional[list[QuestionItem]]:
        data = self.fetch(chapter_id)
        if data is None:
            return None
        return [item_from_dict(d) for d in data if isinstance(d, dict) and "id" in d]


def load_and_reconcile(source: MaterialSource, store, chapter_id: str) -> Optional[list[QuestionItem]]:
    """Load a chapter's items and prune stale progress against them.

    Progress is left alone when no material could be obtained, so an
    offline start never wipes a chapter.
    """
    items = source.fetch_chapter(chapter_id)
    if items is None:
        logger.warning("No material for %s; skipping reconciliation", chapter_id)
        return None
    store.reconcile(chapter_id, ids_for(items))
    return items
