from __future__ import annotations

import argparse
import asyncio
import pathlib
import sys

import httpx

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import get_settings
from app.core.errors import TvGuideError
from app.integrations.telegram_bot import TelegramBotClient

WEBHOOK_PATH = "/api/telegram/webhook"


def _webhook_url(base_url: str) -> str:
    value = (base_url or "").strip().rstrip("/")
    if not value:
        return ""
    if not value.startswith("http"):
        value = f"https://{value}"
    if value.endswith(WEBHOOK_PATH):
        return value
    return f"{value}{WEBHOOK_PATH}"


async def _register(bot_token: str, url: str, secret_token: str | None) -> None:
    async with httpx.AsyncClient(timeout=20) as client:
        await TelegramBotClient(client, bot_token).set_webhook(url, secret_token=secret_token)


def main() -> int:
    parser = argparse.ArgumentParser(description="Register the backend webhook with the Telegram Bot API.")
    parser.add_argument(
        "--base-url",
        type=str,
        default="",
        help="Public backend URL. Defaults to WEB_APP_URL.",
    )
    args = parser.parse_args()

    settings = get_settings()
    url = _webhook_url(args.base_url or settings.web_app_url or "")

    print("[telegram-set-webhook]")
    print(f"- TELEGRAM_BOT_TOKEN set: {'yes' if settings.telegram_bot_token else 'no'}")
    print(f"- TELEGRAM_WEBHOOK_SECRET set: {'yes' if settings.telegram_webhook_secret else 'no'}")
    print(f"- webhook_url: {url or 'unknown'}")
    if not settings.telegram_bot_token or not url:
        print("- verdict: FAIL")
        print("- reason: missing required config")
        return 1

    try:
        asyncio.run(_register(settings.telegram_bot_token, url, settings.telegram_webhook_secret))
    except TvGuideError as exc:
        print("- verdict: FAIL")
        print(f"- reason: {exc.code}")
        return 1

    print("- verdict: PASS")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
