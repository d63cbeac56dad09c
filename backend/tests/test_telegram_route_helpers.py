from app.routes.telegram_response_helpers import (
    _build_web_app_url,
    _escape_markdown_v2,
    _format_show_message_text,
    _parse_command,
    _strip_html,
    _truncate_text,
)


def test_strip_html_removes_tags_and_unescapes():
    assert _strip_html("<p>Tom &amp; <b>Jerry</b></p>") == "Tom & Jerry"
    assert _strip_html(None) == ""


def test_escape_markdown_v2():
    assert _escape_markdown_v2("Mr. Robot (2015)!") == "Mr\\. Robot \\(2015\\)\\!"
    assert _escape_markdown_v2("a_b*c") == "a\\_b\\*c"


def test_truncate_text():
    assert _truncate_text("short", 10) == "short"
    truncated = _truncate_text("x" * 50, 10)
    assert len(truncated) == 10
    assert truncated.endswith("…")


def test_build_web_app_url():
    assert _build_web_app_url("https://tv.example.com/") == "https://tv.example.com/tvguide"
    assert _build_web_app_url("tv.example.vercel.app") == "https://tv.example.vercel.app/tvguide"
    assert _build_web_app_url("  ") is None
    assert _build_web_app_url(None) is None


def test_parse_command():
    assert _parse_command("/search  The Wire ") == ("/search", "The Wire")
    assert _parse_command("/START@tvguide_bot") == ("/start", "")
    assert _parse_command("") == ("", "")


def test_format_show_message_text():
    text = _format_show_message_text(
        {
            "id": 169,
            "name": "Breaking Bad",
            "genres": ["Drama", "Crime"],
            "network": {"name": "AMC"},
            "status": "Ended",
            "premiered": "2008-01-20",
            "rating": {"average": 9.2},
            "summary": "<p>A high school chemistry teacher...</p>",
            "officialSite": "http://www.amc.com/shows/breaking-bad",
        }
    )
    lines = text.split("\n")
    assert lines[0] == "*Breaking Bad* \\(ID: 169\\)"
    assert "_Genres:_ Drama, Crime" in lines
    assert "_Network:_ AMC" in lines
    assert "_Premiered:_ 2008\\-01\\-20" in lines
    assert "_Rating:_ 9\\.2" in lines
    assert "A high school chemistry teacher\\.\\.\\." in lines
    assert lines[-1] == "[Official Site](http://www.amc.com/shows/breaking-bad)"


def test_format_show_message_text_skips_missing_fields():
    text = _format_show_message_text({"id": 1, "name": "Bare", "rating": {"average": None}, "network": None})
    assert text == "*Bare* \\(ID: 1\\)"
