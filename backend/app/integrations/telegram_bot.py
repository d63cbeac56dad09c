from __future__ import annotations

import logging
from json import JSONDecodeError
from typing import Any

import httpx

from app.core.errors import ConfigurationError, UpstreamFailure

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE_URL = "https://api.telegram.org"


class TelegramBotClient:
    def __init__(self, http_client: httpx.AsyncClient, bot_token: str | None, base_url: str = TELEGRAM_API_BASE_URL):
        self._http = http_client
        self._bot_token = bot_token
        self._base_url = base_url.rstrip("/")

    async def call(self, method: str, payload: dict) -> Any:
        if not self._bot_token:
            raise ConfigurationError()
        url = f"{self._base_url}/bot{self._bot_token}/{method}"
        try:
            response = await self._http.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("telegram api request failed method=%s error=%s", method, type(exc).__name__)
            raise UpstreamFailure() from exc
        if response.status_code >= 400:
            logger.warning("telegram api failed: %s %s", response.status_code, response.text)
            raise UpstreamFailure()
        try:
            data = response.json()
        except JSONDecodeError as exc:
            logger.warning("telegram api response parse failed method=%s", method)
            raise UpstreamFailure() from exc
        if not isinstance(data, dict) or not data.get("ok"):
            logger.warning("telegram api response not ok: %s", data)
            raise UpstreamFailure()
        return data.get("result")

    async def send_message(self, chat_id: int, text: str, **options: Any) -> Any:
        return await self.call("sendMessage", {"chat_id": chat_id, "text": text, **options})

    async def set_webhook(self, url: str, secret_token: str | None = None) -> Any:
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        return await self.call("setWebhook", payload)
