"""Environment-driven runtime settings for the collector process."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings loaded from environment variables or a local .env file.

    Probe and endpoint definitions live in the INI file named by MAMBO_CONFIG;
    these settings only cover how the process itself runs.
    """

    APP_NAME: str = "Mambo"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    VERSION: str = "0.1.0"
    MAMBO_CONFIG: str = "mambo.cfg"
    QUERY_TIMEOUT_S: float = 0.0
    SHUTDOWN_TIMEOUT_S: float = 5.0
    STATUS_HOST: str = "0.0.0.0"
    STATUS_PORT: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def query_timeout(self) -> float | None:
        """Return the per-query deadline, or None when queries may block forever."""

        if self.QUERY_TIMEOUT_S <= 0:
            return None
        return self.QUERY_TIMEOUT_S

    def status_enabled(self) -> bool:
        """Return whether the status API should be served."""

        return self.STATUS_PORT > 0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings to avoid repeated environment parsing."""

    return Settings()
