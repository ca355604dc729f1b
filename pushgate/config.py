"""
PushGate - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets and environment-specific values are loaded from environment variables.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Hierarchy (highest to lowest priority):
    1. Environment variables
    2. .env file
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: str = "development"
    app_debug: bool = True
    app_log_level: str = "INFO"
    log_json: bool = False

    # --- Server ---
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000

    # --- Middleware (remote acknowledgment channel) ---
    # "http" = real middleware over HTTPS (httpx)
    # "recording" = in-memory channel that records calls (development/testing)
    ack_channel_backend: str = "recording"
    middleware_base_url: str = "https://vialerpush.voipgrid.nl"
    middleware_timeout_seconds: float = 10.0
    middleware_app_id: str = "com.voipgrid.vialer"
    middleware_sandbox: bool = False
    client_version: str = "0.1.0"
    device_name: str = "pushgate"

    # --- SIP endpoint registration ---
    # None = wait for the registrar however long it takes
    registrar_timeout_seconds: Optional[float] = None
    # Threads reserved for registrar calls; a call that outlives its timeout
    # keeps its thread until the registrar returns
    registrar_max_workers: int = 4
    # Static registrar used in development
    registrar_succeeds: bool = True
    registrar_delay_seconds: float = 0.0

    # --- Reachability ---
    # unavailable | low_speed | high_speed
    initial_reachability: str = "high_speed"

    # --- Credentials (initial state of the in-memory store) ---
    sip_username: Optional[str] = None
    sip_password: Optional[str] = None
    sip_account: Optional[str] = None
    sip_enabled: bool = False
    push_token: Optional[str] = None

    # --- Observability ---
    enable_observability: bool = True
    observability_max_events: int = 10000  # Bounded buffer

    # --- Security ---
    allowed_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance.

    Use dependency injection in routes:
        settings: Settings = Depends(get_settings)
    """
    return Settings()


# Convenience export
settings = get_settings()
