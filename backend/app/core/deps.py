from collections.abc import AsyncIterator

import httpx
from fastapi import Depends

from app.core.config import Settings, get_settings
from app.integrations.telegram_bot import TelegramBotClient
from app.integrations.tvmaze import TvMazeClient
from app.services.favorites import FavoritesService
from app.storage.favorites_store import FavoritesStore, get_favorites_store


async def get_catalog_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[TvMazeClient]:
    async with httpx.AsyncClient(timeout=settings.tvmaze_timeout_seconds) as client:
        yield TvMazeClient(client, settings.tvmaze_base_url)


async def get_telegram_bot(settings: Settings = Depends(get_settings)) -> AsyncIterator[TelegramBotClient]:
    async with httpx.AsyncClient(timeout=20) as client:
        yield TelegramBotClient(client, settings.telegram_bot_token)


def get_favorites_service(
    settings: Settings = Depends(get_settings),
    store: FavoritesStore = Depends(get_favorites_store),
    catalog: TvMazeClient = Depends(get_catalog_client),
) -> FavoritesService:
    return FavoritesService(settings=settings, store=store, catalog=catalog)
