import html
import re

_HTML_TAG_RE = re.compile(r"<[^>]*>?")
_MARKDOWN_V2_SPECIAL_RE = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")
_URL_SPECIAL_RE = re.compile(r"([)\\])")

ABOUT_TEXT = "This bot helps you find TV shows and manage your favorites. Built with FastAPI and the TVMaze API."
HELP_TEXT = "Unknown command. Use /start or /guide to open the TV Guide app, or /search <query> to find shows."
SEARCH_USAGE_TEXT = "Usage: `/search <show name>`"
GUIDE_PROMPT_TEXT = "Click the button below to open the TV Guide:"
GUIDE_NOT_CONFIGURED_TEXT = "Sorry, the TV Guide app is not configured correctly."
GENERIC_ERROR_TEXT = "Sorry, an error occurred. Please try again later."
SEARCH_ERROR_TEXT = "Sorry, an error occurred during the search."
SUMMARY_MAX_CHARS = 600


def _strip_html(value: str | None) -> str:
    if not value:
        return ""
    return html.unescape(_HTML_TAG_RE.sub("", value)).strip()


def _escape_markdown_v2(text: str) -> str:
    return _MARKDOWN_V2_SPECIAL_RE.sub(r"\\\1", text or "")


def _escape_markdown_v2_url(url: str) -> str:
    return _URL_SPECIAL_RE.sub(r"\\\1", url or "")


def _truncate_text(text: str, max_chars: int) -> str:
    compact = (text or "").strip()
    if len(compact) <= max_chars:
        return compact
    return f"{compact[: max(1, max_chars - 1)].rstrip()}…"


def _build_web_app_url(base_url: str | None, path: str = "/tvguide") -> str | None:
    value = (base_url or "").strip().rstrip("/")
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return f"{value}{path}"


def _guide_keyboard(web_app_url: str) -> dict:
    return {"inline_keyboard": [[{"text": "Open TV Guide 📺", "web_app": {"url": web_app_url}}]]}


def _format_show_message_text(show: dict) -> str:
    """Render one catalog show as a MarkdownV2 message body."""
    esc = _escape_markdown_v2
    name = str(show.get("name") or "Untitled")
    lines = [f"*{esc(name)}* \\(ID: {esc(str(show.get('id', '?')))}\\)"]

    genres = show.get("genres") or []
    if genres:
        lines.append(f"_Genres:_ {esc(', '.join(str(genre) for genre in genres))}")
    network = (show.get("network") or {}).get("name")
    if network:
        lines.append(f"_Network:_ {esc(network)}")
    web_channel = (show.get("webChannel") or {}).get("name")
    if web_channel:
        lines.append(f"_Web Channel:_ {esc(web_channel)}")
    if show.get("status"):
        lines.append(f"_Status:_ {esc(str(show['status']))}")
    if show.get("premiered"):
        lines.append(f"_Premiered:_ {esc(str(show['premiered']))}")
    rating = (show.get("rating") or {}).get("average")
    if rating:
        lines.append(f"_Rating:_ {esc(str(rating))}")

    summary = _truncate_text(_strip_html(show.get("summary")), SUMMARY_MAX_CHARS)
    if summary:
        lines.append("")
        lines.append(esc(summary))
    if show.get("officialSite"):
        lines.append(f"[Official Site]({_escape_markdown_v2_url(str(show['officialSite']))})")
    return "\n".join(lines)


def _parse_command(text: str) -> tuple[str, str]:
    command_token, _, rest = (text or "").strip().partition(" ")
    command = command_token.split("@", 1)[0].strip().lower()
    return command, rest.strip()
