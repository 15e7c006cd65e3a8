from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite:///./stockroom.db"
    log_level: str = "INFO"

    deduplication_enabled: bool = True
    deduplication_ttl_hours: int = 24
    deduplication_retry_after_seconds: int = 5

    auth_secret_key: str = "stockroom-dev-secret"
    auth_algorithm: str = "HS256"

    allowed_origins: str = "http://localhost:3000"

    @property
    def database_url_normalized(self) -> str:
        url = self.database_url.strip()
        if url.startswith("postgres://"):
            return "postgresql+psycopg://" + url[len("postgres://") :]
        if url.startswith("postgresql://"):
            return "postgresql+psycopg://" + url[len("postgresql://") :]
        return url

    @property
    def allowed_origins_list(self) -> list[str]:
        origins = [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return origins or ["http://localhost:3000"]


settings = Settings()
