"""Durable JSON key-value store with change notification, backed by SQLite."""
import json
import logging
import time
from typing import Any, Callable

from leitner_tutor.db import get_connection, init_db
from leitner_tutor.errors import MalformedStateError

logger = logging.getLogger(__name__)

_MISSING = object()


class KeyValueStore:
    """JSON values under string keys.

    Several instances (or processes) may share one database file. Each
    instance remembers the row version it last read or wrote per key;
    ``poll`` reports keys whose version moved because somebody else wrote
    them. Writes replace the whole value: the last writer wins.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        init_db(db_path)
        self._seen: dict[str, int | None] = {}
        self._observers: dict[str, list[Callable[[Any], None]]] = {}

    def _read_row(self, key: str):
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT value, version FROM kv WHERE key = ?", (key,)).fetchone()
        conn.close()
        return row

    @staticmethod
    def _decode(key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedStateError(f"value under {key!r} is not valid JSON: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        row = self._read_row(key)
        if row is None:
            self._seen[key] = None
            return default
        self._seen[key] = row["version"]
        return self._decode(key, row["value"])

    def set(self, key: str, value: Any) -> None:
        raw = json.dumps(value, ensure_ascii=False)
        conn = get_connection(self.db_path)
        conn.execute(
            """INSERT INTO kv (key, value, version, updated_at) VALUES (?, ?, 1, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                version = kv.version + 1,
                updated_at = excluded.updated_at""",
            (key, raw, int(time.time() * 1000)),
        )
        version = conn.execute("SELECT version FROM kv WHERE key = ?", (key,)).fetchone()["version"]
        conn.commit()
        conn.close()
        self._seen[key] = version

    def delete(self, key: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        conn.commit()
        conn.close()
        self._seen[key] = None

    def subscribe(self, key: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Observe changes to ``key`` made elsewhere. Returns an unsubscribe handle."""
        if key not in self._seen:
            row = self._read_row(key)
            self._seen[key] = row["version"] if row is not None else None
        self._observers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._observers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def poll(self) -> list[str]:
        """Deliver external changes to observers. Returns the keys that changed."""
        changed = []
        for key, callbacks in list(self._observers.items()):
            if not callbacks:
                continue
            row = self._read_row(key)
            version = row["version"] if row is not None else None
            if version == self._seen.get(key, _MISSING):
                continue
            self._seen[key] = version
            try:
                value = self._decode(key, row["value"]) if row is not None else None
            except MalformedStateError:
                logger.warning("Ignoring external change to %s: undecodable value", key)
                continue
            changed.append(key)
            logger.debug("External change to %s (version %s)", key, version)
            for callback in list(callbacks):
                try:
                    callback(value)
                except Exception:
                    logger.exception("Observer for %s failed", key)
        return changed
