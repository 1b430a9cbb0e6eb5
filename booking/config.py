from datetime import tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Env
    env: str = "development"

    # External booking API
    server_api_endpoint: str = "http://localhost:3000/api"
    request_timeout_seconds: float = 10.0
    use_mock_api: bool = False

    # IANA zone used to bucket slots by day; empty keeps each timestamp's own date
    display_timezone: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def tzinfo(self) -> tzinfo | None:
        return ZoneInfo(self.display_timezone) if self.display_timezone else None

    @property
    def is_production(self) -> bool:
        return self.env == "production"


settings = Settings()
