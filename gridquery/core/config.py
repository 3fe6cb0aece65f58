from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "gridquery"

    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:4444"

    DATABASE_URL: str

    PAGE_SIZE_DEFAULT: int = 20
    PAGE_SIZE_MAX: int = 100
    TEXT_MATCH_CASE_SENSITIVE: bool = False
    STORE_QUERY_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_LOCALE: str = "en"  # en | es

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
