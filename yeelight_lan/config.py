"""Client configuration using Pydantic Settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from environment variables and .env file."""

    # Command connection
    command_port: int = 55443
    connect_timeout: float = 5.0
    response_timeout: float = 5.0

    # Streaming-mode handoff (device connects back to us)
    handoff_poll_interval: float = 0.1
    handoff_poll_attempts: int = 10

    # Discovery
    discovery_timeout: float = 10.0
    discovery_probe_count: int = 1
    discovery_interface: str = ""  # empty = first usable interface

    @field_validator("command_port")
    @classmethod
    def _check_port(cls, v: int) -> int:
        if not 0 < v <= 0xFFFF:
            raise ValueError("command_port must be 1-65535")
        return v

    @field_validator("handoff_poll_attempts", "discovery_probe_count")
    @classmethod
    def _check_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    model_config = {"env_prefix": "YEELIGHT_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
