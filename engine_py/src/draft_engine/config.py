"""
Server and client configuration.
"""

import os

from pydantic import BaseModel, Field, field_validator


class ServerConfig(BaseModel):
    """Configuration for the draft room server."""

    host: str = Field(
        default="0.0.0.0",
        description="Interface the server binds to"
    )
    port: int = Field(
        default=7778,
        ge=1,
        le=65535,
        description="Listen port"
    )
    log_level: str = Field(
        default="info",
        description="Root log level"
    )
    room_cleanup_delay: float = Field(
        default=120.0,
        ge=0,
        description="Seconds an empty room survives before it is deleted"
    )
    default_room_id: str = Field(
        default="DEFAULT",
        min_length=1,
        description="Id of the pinned room that is never garbage collected"
    )
    room_code_length: int = Field(
        default=6,
        ge=4,
        le=12,
        description="Length of generated room codes"
    )
    max_code_attempts: int = Field(
        default=1000,
        ge=1,
        description="Collisions tolerated before room creation gives up"
    )
    champion_versions_url: str = Field(
        default="https://ddragon.leagueoflegends.com/api/versions.json",
        description="Data Dragon version list"
    )
    champion_data_url: str = Field(
        default="https://ddragon.leagueoflegends.com/cdn/{version}/data/en_US/champion.json",
        description="Champion catalog for a given version"
    )
    champion_image_url: str = Field(
        default="https://ddragon.leagueoflegends.com/cdn/{version}/img/champion/{image}",
        description="Champion portrait for a given version"
    )
    champion_cache_ttl: float = Field(
        default=3600.0,
        ge=0,
        description="Seconds the champion catalog is cached"
    )
    champion_request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for upstream champion requests"
    )

    @field_validator('default_room_id')
    @classmethod
    def normalize_default_room(cls, v):
        return v.upper()

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Build a configuration from environment variables."""
        overrides = {}
        if os.getenv("HOST"):
            overrides["host"] = os.getenv("HOST")
        if os.getenv("PORT"):
            overrides["port"] = int(os.getenv("PORT"))
        if os.getenv("LOG_LEVEL"):
            overrides["log_level"] = os.getenv("LOG_LEVEL").lower()
        if os.getenv("ROOM_CLEANUP_DELAY"):
            overrides["room_cleanup_delay"] = float(os.getenv("ROOM_CLEANUP_DELAY"))
        if os.getenv("DEFAULT_ROOM_ID"):
            overrides["default_room_id"] = os.getenv("DEFAULT_ROOM_ID")
        return cls(**overrides)


class ClientConfig(BaseModel):
    """Reconnect, heartbeat and acknowledgment settings for a client session."""

    url: str = Field(
        default="ws://localhost:7778/ws",
        description="WebSocket endpoint of the draft server"
    )
    base_delay: float = Field(
        default=1.0,
        ge=0,
        description="First reconnect delay in seconds, doubled on each attempt"
    )
    max_delay: float = Field(
        default=30.0,
        ge=0,
        description="Ceiling for the reconnect delay"
    )
    max_reconnect_attempts: int = Field(
        default=10,
        ge=0,
        description="Reconnect attempts before the session gives up"
    )
    heartbeat_interval: float = Field(
        default=15.0,
        gt=0,
        description="Seconds between pings"
    )
    max_missed_pongs: int = Field(
        default=2,
        ge=1,
        description="Consecutive unanswered pings that force a reconnect"
    )
    ack_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for an ack before re-sending"
    )
    max_send_attempts: int = Field(
        default=3,
        ge=1,
        description="Sends of a critical message before delivery is reported failed"
    )

    @field_validator('max_delay')
    @classmethod
    def validate_max_delay(cls, v, info):
        """Validate the delay ceiling is not below the base delay."""
        base_delay = info.data.get('base_delay', 1.0)
        if v < base_delay:
            raise ValueError(f'max_delay ({v}) must be >= base_delay ({base_delay})')
        return v

    def backoff_delay(self, attempt: int) -> float:
        """Reconnect delay for a zero-based attempt number."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)
