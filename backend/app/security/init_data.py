from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode

logger = logging.getLogger(__name__)

WEB_APP_DATA_LABEL = b"WebAppData"
HASH_FIELD = "hash"


@dataclass(frozen=True)
class TelegramUser:
    id: int
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None
    is_premium: bool | None = None
    allows_write_to_pm: bool | None = None

    @classmethod
    def from_payload(cls, payload: object) -> TelegramUser | None:
        if not isinstance(payload, dict):
            return None
        user_id = payload.get("id")
        # bool is an int subclass; reject it explicitly.
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        return cls(
            id=user_id,
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            username=payload.get("username"),
            language_code=payload.get("language_code"),
            is_premium=payload.get("is_premium"),
            allows_write_to_pm=payload.get("allows_write_to_pm"),
        )


def _secret_key(bot_token: str) -> bytes:
    return hmac.new(WEB_APP_DATA_LABEL, bot_token.encode("utf-8"), hashlib.sha256).digest()


def _data_check_string(pairs: list[tuple[str, str]]) -> str:
    ordered = sorted(pairs, key=lambda item: item[0].encode("utf-8"))
    return "\n".join(f"{key}={value}" for key, value in ordered)


def _sign(pairs: list[tuple[str, str]], bot_token: str) -> str:
    check_string = _data_check_string(pairs)
    return hmac.new(_secret_key(bot_token), check_string.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_init_data(fields: dict[str, str], bot_token: str) -> str:
    """Build a signed initData query string, as Telegram would for a Web App."""
    pairs = [(key, value) for key, value in fields.items() if key != HASH_FIELD]
    signature = _sign(pairs, bot_token)
    return urlencode([*pairs, (HASH_FIELD, signature)])


def _is_fresh(pairs: list[tuple[str, str]], max_age_seconds: int) -> bool:
    auth_date = next((value for key, value in pairs if key == "auth_date"), "")
    try:
        issued_at = int(auth_date)
    except ValueError:
        return False
    return int(time.time()) - issued_at <= max_age_seconds


def verify_init_data(init_data: str, bot_token: str | None, *, max_age_seconds: int | None = None) -> TelegramUser | None:
    """Return the embedded user when ``init_data`` carries a valid signature.

    Any problem (no secret, no hash, bad signature, unparseable user) yields
    ``None``; nothing in the payload is trusted before the hash matches.
    """
    if not bot_token or not init_data:
        return None
    try:
        parsed = parse_qsl(init_data, keep_blank_values=True)
        received = next((value for key, value in parsed if key == HASH_FIELD), None)
        if not received:
            return None
        pairs = [(key, value) for key, value in parsed if key != HASH_FIELD]

        expected = _sign(pairs, bot_token)
        if not hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8")):
            return None

        if max_age_seconds and max_age_seconds > 0 and not _is_fresh(pairs, max_age_seconds):
            return None

        user_json = next((value for key, value in pairs if key == "user"), None)
        if not user_json:
            return None
        return TelegramUser.from_payload(json.loads(user_json))
    except Exception as exc:
        logger.warning("init_data validation error: %s", type(exc).__name__)
        return None
