import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    GEMINI_API_KEY: str = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = "gemini-2.5-flash"
    JWT_SECRET_KEY: str = os.environ.get("JWT_SECRET_KEY", "")
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    RESOLVER_TIMEOUT_SECONDS: float = 30.0
    LIVE_CONTEXT_TIMEOUT_SECONDS: float = 45.0
    REVERSE_GEOCODE_TIMEOUT_SECONDS: float = 30.0


settings = Settings()
