from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    project_name: str = "Wayfarer"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO")

    # Proxy endpoints are CORS-open
    cors_origins: str = Field(default="*")

    # Nakama game backend
    nakama_host: str = Field(default="nakama-demo.heroiclabs.com")
    nakama_port: int = Field(default=7350)
    nakama_use_ssl: bool = Field(default=False)
    nakama_server_key: str = Field(default="defaultkey")
    nakama_timeout: float = Field(default=10.0, description="RPC HTTP timeout in seconds")

    # OpenRouter proxy
    openrouter_api_key: str = Field(default="")
    openrouter_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions")
    openrouter_referer: str = Field(default="https://wayfarer.app")
    openrouter_title: str = Field(default="Wayfarer")

    # Google Places proxy
    google_maps_api_key: str = Field(default="")
    google_places_url: str = Field(default="https://places.googleapis.com/v1/places:searchText")
    google_places_field_mask: str = Field(default="places.id,places.displayName,places.formattedAddress")

    proxy_timeout: float = Field(default=30.0)

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def nakama_base_url(self) -> str:
        scheme = "https" if self.nakama_use_ssl else "http"
        return f"{scheme}://{self.nakama_host}:{self.nakama_port}"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
