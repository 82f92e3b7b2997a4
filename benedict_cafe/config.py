from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Telegram
    TG_TOKEN: str = ""
    WEBHOOK_URL: str = ""
    ADMIN_IDS: str = ""

    # Backend API
    API_BASE_URL: str = "http://localhost:3000/api"
    ADMIN_API_TOKEN: str = ""
    HTTP_TIMEOUT: float = 15.0

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Menu cache
    MENU_CACHE_TTL: int = 30 * 60
    MENU_CACHE_BACKEND: str = "memory"  # memory | redis | none

    # AI
    GEMINI_API_KEY: str = ""
    AI_MODEL: str = "gemini-2.0-flash"
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"

    # Database (migrations only)
    DATABASE_URL: str = ""

    # Cafe
    CAFE_NAME: str = "Benedict Cafe"
    CAFE_ADDRESS: str = ""
    CAFE_PHONE: str = ""
    CAFE_INSTAGRAM: str = ""

    # App
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def admin_ids(self) -> List[int]:
        return [
            int(value)
            for chunk in self.ADMIN_IDS.split(",")
            if (value := chunk.strip()).isdigit()
        ]


settings = Settings()
