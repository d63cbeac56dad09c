import asyncio
import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from app.core.config import Settings, get_settings
from app.core.deps import get_catalog_client, get_telegram_bot
from app.core.errors import ChatReplyError, TvGuideError
from app.integrations.telegram_bot import TelegramBotClient
from app.integrations.tvmaze import TvMazeClient
from app.routes.telegram_response_helpers import (
    ABOUT_TEXT,
    GENERIC_ERROR_TEXT,
    GUIDE_NOT_CONFIGURED_TEXT,
    GUIDE_PROMPT_TEXT,
    HELP_TEXT,
    SEARCH_ERROR_TEXT,
    SEARCH_USAGE_TEXT,
    _build_web_app_url,
    _format_show_message_text,
    _guide_keyboard,
    _parse_command,
)

router = APIRouter(prefix="/api/telegram", tags=["telegram"])
logger = logging.getLogger(__name__)
SEARCH_MESSAGE_DELAY_SECONDS = 0.2


def _chat_id(message: dict) -> int | None:
    chat = message.get("chat")
    return chat.get("id") if isinstance(chat, dict) else None


def _require_telegram_settings(settings: Settings) -> Settings:
    if not settings.telegram_bot_token:
        raise HTTPException(status_code=503, detail="TELEGRAM_BOT_TOKEN is not configured on the server.")
    return settings


async def _send_guide(bot: TelegramBotClient, chat_id: int, settings: Settings) -> None:
    web_app_url = _build_web_app_url(settings.web_app_url, settings.web_app_path)
    if not web_app_url:
        logger.error("web app url is not configured for chat_id=%s", chat_id)
        await bot.send_message(chat_id, GUIDE_NOT_CONFIGURED_TEXT)
        return
    await bot.send_message(chat_id, GUIDE_PROMPT_TEXT, reply_markup=_guide_keyboard(web_app_url))


async def _send_search_results(
    bot: TelegramBotClient,
    catalog: TvMazeClient,
    chat_id: int,
    query: str,
    limit: int,
) -> None:
    if not query:
        await bot.send_message(chat_id, SEARCH_USAGE_TEXT, parse_mode="MarkdownV2")
        return

    await bot.send_message(chat_id, f'Searching for "{query}"...')
    try:
        results = await catalog.search_shows(query)
    except TvGuideError as exc:
        logger.warning("telegram search failed chat_id=%s error=%s", chat_id, exc.code)
        await bot.send_message(chat_id, SEARCH_ERROR_TEXT)
        return

    if not results:
        await bot.send_message(chat_id, f'No shows found matching "{query}".')
        return

    top = results[: max(1, limit)]
    await bot.send_message(chat_id, f"Found {len(results)} shows (top {len(top)}):")
    for index, result in enumerate(top):
        if index:
            await asyncio.sleep(SEARCH_MESSAGE_DELAY_SECONDS)
        await bot.send_message(
            chat_id,
            _format_show_message_text(result.get("show") or {}),
            parse_mode="MarkdownV2",
            disable_web_page_preview=True,
        )


async def _dispatch_message(
    message: dict,
    bot: TelegramBotClient,
    catalog: TvMazeClient,
    settings: Settings,
) -> None:
    chat_id = _chat_id(message)
    text = message.get("text")
    text = text.strip() if isinstance(text, str) else ""
    sender = message.get("from")
    if not (isinstance(sender, dict) and sender.get("id")):
        logger.warning("telegram message without user id chat_id=%s", chat_id)

    command, rest = _parse_command(text)
    if command in {"/start", "/guide"}:
        await _send_guide(bot, chat_id, settings)
    elif command == "/search":
        await _send_search_results(bot, catalog, chat_id, rest, settings.search_result_limit)
    elif command == "/about":
        await bot.send_message(chat_id, ABOUT_TEXT)
    else:
        await bot.send_message(chat_id, HELP_TEXT)


async def _handle_message(
    message: dict,
    bot: TelegramBotClient,
    catalog: TvMazeClient,
    settings: Settings,
) -> None:
    chat_id = _chat_id(message)
    try:
        await _dispatch_message(message, bot, catalog, settings)
    except Exception as exc:
        raise ChatReplyError(chat_id, exc) from exc


@router.post("/webhook")
async def telegram_webhook(
    update: dict,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
    bot: TelegramBotClient = Depends(get_telegram_bot),
    catalog: TvMazeClient = Depends(get_catalog_client),
):
    _require_telegram_settings(settings)

    if settings.telegram_webhook_secret:
        received = (x_telegram_bot_api_secret_token or "").encode("utf-8")
        if not hmac.compare_digest(received, settings.telegram_webhook_secret.encode("utf-8")):
            raise HTTPException(status_code=401, detail="Invalid webhook secret.")

    message = update.get("message")
    if not isinstance(message, dict) or not message:
        logger.info("telegram non-message update ignored keys=%s", sorted(update.keys()))
        return {"ok": True}

    chat_id = _chat_id(message)
    logger.info("telegram webhook received chat_id=%s has_text=%s", chat_id, bool(message.get("text")))
    if not chat_id:
        return {"ok": True}

    try:
        await _handle_message(message, bot, catalog, settings)
    except ChatReplyError as exc:
        logger.exception("telegram update handling failed chat_id=%s", exc.chat_id)
        if exc.chat_id is not None:
            try:
                await bot.send_message(exc.chat_id, GENERIC_ERROR_TEXT)
            except TvGuideError:
                logger.warning("failed to send error message chat_id=%s", exc.chat_id)
        return JSONResponse(status_code=500, content={"ok": False, "message": "Internal server error"})

    return {"ok": True}
