"""Runtime configuration for probe sessions."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_DOTENV = Path(__file__).resolve().parents[2] / ".env"

WS_DISCOVERY_GROUP = "239.255.255.250"
WS_DISCOVERY_PORT = 3702


class TerminationPolicy(StrEnum):
    """When the orchestrator stops collecting responses."""

    # Stop once `timeout` passes without a new datagram.
    IDLE = "idle"
    # Always collect for the full `timeout` from session start.
    FULL_DURATION = "full_duration"


class ProbeSettings(BaseSettings):
    """Probe tuning, overridable via ``ONVIF_PROBE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ONVIF_PROBE_",
        env_file=(".env", _REPO_DOTENV),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    multicast_group: str = WS_DISCOVERY_GROUP
    multicast_port: int = Field(default=WS_DISCOVERY_PORT, ge=1, le=65535)
    bind_host: str = "0.0.0.0"
    ttl: int = Field(default=4, ge=1, le=255)
    rounds: int = Field(default=4, ge=1)
    message_delay_s: float = Field(default=0.1, ge=0.0)
    read_timeout_s: float = Field(default=1.0, gt=0.0)
    max_matches: int | None = Field(default=None, ge=1)
    termination: TerminationPolicy = TerminationPolicy.IDLE
    device_types: tuple[str, ...] = (
        "NetworkVideoTransmitter",
        "Device",
        "NetworkVideoDisplay",
    )
    recv_buffer_size: int = Field(default=65535, ge=1024)
    listener_join_timeout_s: float = Field(default=2.0, ge=0.0)

    @field_validator("termination", mode="before")
    @classmethod
    def _normalize_termination(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _require_device_types(self) -> ProbeSettings:
        if not self.device_types:
            raise ValueError("device_types must name at least one device type")
        return self

    @property
    def multicast_address(self) -> tuple[str, int]:
        return (self.multicast_group, self.multicast_port)


__all__ = ["ProbeSettings", "TerminationPolicy", "WS_DISCOVERY_GROUP", "WS_DISCOVERY_PORT"]
