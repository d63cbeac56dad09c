from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from app.core.config import get_settings
from app.core.errors import PersistenceCorruption

logger = logging.getLogger(__name__)

Favorites = dict[int, set[int]]


def _parse_favorites(raw: bytes) -> Favorites:
    try:
        data = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise PersistenceCorruption("favorites file is not valid UTF-8") from exc
    except json.JSONDecodeError as exc:
        raise PersistenceCorruption("favorites file is not valid JSON") from exc
    if not isinstance(data, dict):
        raise PersistenceCorruption("favorites file must hold an object")

    favorites: Favorites = {}
    for key, show_ids in data.items():
        try:
            user_id = int(key)
        except (TypeError, ValueError) as exc:
            raise PersistenceCorruption(f"invalid user id key: {key!r}") from exc
        if not isinstance(show_ids, list) or not all(
            isinstance(show_id, int) and not isinstance(show_id, bool) for show_id in show_ids
        ):
            raise PersistenceCorruption(f"invalid show ids for user {user_id}")
        if show_ids:
            favorites.setdefault(user_id, set()).update(show_ids)
    return favorites


def _dump_favorites(favorites: Favorites) -> str:
    payload = {str(user_id): sorted(show_ids) for user_id, show_ids in sorted(favorites.items()) if show_ids}
    return json.dumps(payload, indent=2)


class FavoritesStore:
    """Per-user favorite show ids kept in one JSON file.

    Each call is a full load-modify-save cycle under the store lock, so one
    instance must own the file within a process.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> Favorites:
        with self._lock:
            return self._load()

    def save(self, favorites: Favorites) -> None:
        with self._lock:
            self._save(favorites)

    def add(self, user_id: int, show_id: int) -> bool:
        with self._lock:
            favorites = self._load(strict=True)
            show_ids = favorites.setdefault(user_id, set())
            if show_id in show_ids:
                return False
            show_ids.add(show_id)
            self._save(favorites)
            return True

    def remove(self, user_id: int, show_id: int) -> bool:
        with self._lock:
            favorites = self._load(strict=True)
            show_ids = favorites.get(user_id)
            if not show_ids or show_id not in show_ids:
                return False
            show_ids.discard(show_id)
            if not show_ids:
                del favorites[user_id]
            self._save(favorites)
            return True

    def list(self, user_id: int) -> set[int]:
        with self._lock:
            return set(self._load().get(user_id, set()))

    def contains(self, user_id: int, show_id: int) -> bool:
        return show_id in self.list(user_id)

    def _load(self, *, strict: bool = False) -> Favorites:
        # strict: a mutation follows, so an unreadable file must not be saved over.
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            logger.info("favorites file not found path=%s, starting empty", self.path)
            return {}
        except OSError:
            logger.exception("favorites file read failed path=%s", self.path)
            if strict:
                raise
            return {}

        try:
            return _parse_favorites(raw)
        except PersistenceCorruption as exc:
            backup = self._quarantine()
            logger.error("favorites file corrupt path=%s reason=%s backup=%s", self.path, exc, backup)
            if strict and backup is None:
                raise
            return {}

    def _quarantine(self) -> Path | None:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            os.replace(self.path, backup)
        except OSError:
            logger.exception("favorites backup failed path=%s", self.path)
            return None
        return backup

    def _save(self, favorites: Favorites) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(_dump_favorites(favorites))
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


@lru_cache
def _store_for_path(path: str) -> FavoritesStore:
    return FavoritesStore(path)


def get_favorites_store() -> FavoritesStore:
    return _store_for_path(str(Path(get_settings().favorites_file_path).resolve()))
