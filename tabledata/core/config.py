from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "tabledata-api"

    JWT_SECRET: str = "change_me_data_api"
    JWT_TTL_MINUTES: int = 240

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8080"

    DATABASE_URL: str
    EXTERNAL_DB_POOL_PRE_PING: bool = True

    DATA_DEFAULT_PAGE_SIZE: int = 25
    DATA_MAX_PAGE_SIZE: int = 1000

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
