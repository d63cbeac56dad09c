from scripts.set_telegram_webhook import _webhook_url


def test_webhook_url():
    assert _webhook_url("https://tv.example.com") == "https://tv.example.com/api/telegram/webhook"
    assert _webhook_url("tv.example.com/") == "https://tv.example.com/api/telegram/webhook"
    assert _webhook_url("https://tv.example.com/api/telegram/webhook") == "https://tv.example.com/api/telegram/webhook"
    assert _webhook_url("") == ""
