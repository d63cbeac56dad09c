from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    telegram_bot_token: str | None = None
    telegram_webhook_secret: str | None = None
    # 0 keeps initData freshness unchecked.
    telegram_init_data_max_age_seconds: int = 0

    web_app_url: str | None = None
    web_app_path: str = "/tvguide"

    favorites_file_path: str = "favorites.json"

    tvmaze_base_url: str = "https://api.tvmaze.com"
    tvmaze_timeout_seconds: float = 10.0
    catalog_lookup_timeout_seconds: float = 8.0
    search_result_limit: int = 5

    frontend_url: str = "http://localhost:3000"
    allowed_origins: str = "http://localhost:3000"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
