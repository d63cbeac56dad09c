from __future__ import annotations

import asyncio
import logging

from app.core.config import Settings
from app.core.errors import ConfigurationError, OperationFailed, PersistenceCorruption, Unauthorized
from app.integrations.tvmaze import TvMazeClient
from app.security.init_data import TelegramUser, verify_init_data
from app.storage.favorites_store import FavoritesStore

logger = logging.getLogger(__name__)


class FavoritesService:
    """Authenticated favorites use-cases for the mini-app.

    Holds no state of its own; every call verifies ``init_data`` first and
    only then reads or mutates the store.
    """

    def __init__(self, settings: Settings, store: FavoritesStore, catalog: TvMazeClient):
        self._settings = settings
        self._store = store
        self._catalog = catalog

    def authenticate(self, init_data: str) -> TelegramUser:
        bot_token = self._settings.telegram_bot_token
        if not bot_token:
            logger.error("TELEGRAM_BOT_TOKEN is not set; cannot validate initData")
            raise ConfigurationError()

        user = verify_init_data(
            init_data,
            bot_token,
            max_age_seconds=self._settings.telegram_init_data_max_age_seconds,
        )
        if user is None:
            logger.warning("init_data rejected")
            raise Unauthorized()
        return user

    async def list_favorite_shows(self, init_data: str) -> list[dict]:
        user = self.authenticate(init_data)
        show_ids = sorted(self._store.list(user.id))
        if not show_ids:
            return []

        results = await asyncio.gather(
            *(self._lookup_show(show_id) for show_id in show_ids),
            return_exceptions=True,
        )
        shows: list[dict] = []
        for show_id, result in zip(show_ids, results):
            if isinstance(result, BaseException):
                logger.warning("favorite lookup failed user_id=%s show_id=%s error=%s", user.id, show_id, type(result).__name__)
                continue
            if result is None:
                continue
            shows.append(result)
        logger.info("favorites listed user_id=%s requested=%s returned=%s", user.id, len(show_ids), len(shows))
        return shows

    async def _lookup_show(self, show_id: int) -> dict | None:
        return await asyncio.wait_for(
            self._catalog.get_show_details(show_id),
            timeout=self._settings.catalog_lookup_timeout_seconds,
        )

    def list_favorite_ids(self, init_data: str) -> list[int]:
        user = self.authenticate(init_data)
        return sorted(self._store.list(user.id))

    def add_favorite(self, init_data: str, show_id: int) -> bool:
        user = self.authenticate(init_data)
        return self._mutate(self._store.add, user.id, show_id)

    def remove_favorite(self, init_data: str, show_id: int) -> bool:
        user = self.authenticate(init_data)
        return self._mutate(self._store.remove, user.id, show_id)

    def _mutate(self, operation, user_id: int, show_id: int) -> bool:
        try:
            return operation(user_id, show_id)
        except (OSError, PersistenceCorruption) as exc:
            logger.error("favorites store write refused user_id=%s show_id=%s error=%s", user_id, show_id, type(exc).__name__)
            raise OperationFailed() from exc

    def toggle_favorite(self, init_data: str, show_id: int) -> bool:
        """Flip membership of ``show_id`` and return the new state."""
        user = self.authenticate(init_data)
        currently_favorite = self._store.contains(user.id, show_id)
        operation = self._store.remove if currently_favorite else self._store.add
        changed = self._mutate(operation, user.id, show_id)

        if not changed:
            action = "remove" if currently_favorite else "add"
            logger.error("favorite toggle failed action=%s user_id=%s show_id=%s", action, user.id, show_id)
            raise OperationFailed()

        is_favorite = not currently_favorite
        logger.info("favorite toggled user_id=%s show_id=%s is_favorite=%s", user.id, show_id, is_favorite)
        return is_favorite
