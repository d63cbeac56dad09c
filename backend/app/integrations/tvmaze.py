from __future__ import annotations

import logging
from json import JSONDecodeError
from typing import Any

import httpx

from app.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

TVMAZE_API_BASE_URL = "https://api.tvmaze.com"
DEFAULT_SCHEDULE_COUNTRY = "GB"
_RAISE = object()


class TvMazeClient:
    """Thin pass-through to the TVMaze REST API.

    The caller owns ``http_client``; nothing is cached or retried here.
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: str = TVMAZE_API_BASE_URL):
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def _get(self, path: str, params: Any = None, *, not_found: Any = _RAISE) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.get(url, params=params)
        except httpx.HTTPError as exc:
            logger.warning("tvmaze request failed path=%s error=%s", path, type(exc).__name__)
            raise UpstreamFailure() from exc

        if response.status_code == 404 and not_found is not _RAISE:
            logger.info("tvmaze not found path=%s", path)
            return not_found
        if response.status_code >= 400:
            logger.warning("tvmaze api failed path=%s status=%s body=%s", path, response.status_code, response.text[:300])
            raise UpstreamFailure()
        try:
            return response.json()
        except JSONDecodeError as exc:
            logger.warning("tvmaze response parse failed path=%s", path)
            raise UpstreamFailure() from exc

    async def search_shows(self, query: str) -> list[dict]:
        return await self._get("/search/shows", params={"q": query})

    async def get_show_details(self, show_id: int) -> dict | None:
        return await self._get(f"/shows/{int(show_id)}", not_found=None)

    async def get_show_with_episodes_and_cast(self, show_id: int) -> dict | None:
        return await self._get(
            f"/shows/{int(show_id)}",
            params=[("embed[]", "episodes"), ("embed[]", "cast")],
            not_found=None,
        )

    async def get_shows_by_page(self, page: int = 0) -> list[dict]:
        # TVMaze answers 404 past the last page.
        return await self._get("/shows", params={"page": int(page)}, not_found=[])

    async def get_web_schedule(self, date: str, country_code: str = DEFAULT_SCHEDULE_COUNTRY) -> list[dict]:
        return await self._get("/schedule/web", params={"date": date, "country": country_code})
