"""Configuration for the Monitored Microservice."""

import socket

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Monitored Microservice settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service settings
    service_name: str = "monitored"
    environment: str = "development"
    log_level: str = "DEBUG"

    # Server settings
    host: str = "0.0.0.0"  # nosec B104 (binding to all interfaces for Docker)
    port: int = 8080

    # Loki labels attached to every pushed stream
    app_label: str = "Monitored Microservice Version 1"
    machine_name: str = Field(default_factory=socket.gethostname)

    # Loki push transport
    loki_enabled: bool = True
    loki_url: str = "http://localhost:3100"
    loki_batch_size: int = Field(100, ge=1)
    loki_flush_interval: float = Field(2.0, gt=0)
    loki_timeout: float = Field(5.0, gt=0)

    # Mirror log events to stdout
    log_to_console: bool = False

    @property
    def docs_enabled(self) -> bool:
        """Interactive API docs are only exposed in development."""
        return self.environment.lower() == "development"


settings = Settings()
