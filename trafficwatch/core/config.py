from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from ``TRAFFICWATCH_*`` environment variables or ``.env``.

    The device, community and interface index also accept the
    ``MIKROTIK_IP`` / ``SNMP_COMMUNITY`` / ``INTERFACE_INDEX`` names.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRAFFICWATCH_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    device_host: str = Field(
        default="192.168.56.3",
        validation_alias=AliasChoices("TRAFFICWATCH_DEVICE_HOST", "MIKROTIK_IP"),
    )
    snmp_community: str = Field(
        default="public",
        validation_alias=AliasChoices("TRAFFICWATCH_SNMP_COMMUNITY", "SNMP_COMMUNITY"),
    )
    snmp_port: int = Field(default=161, ge=1, le=65535)
    snmp_version: Literal["1", "2c"] = "2c"
    snmp_hc_counters: bool = True
    snmp_retries: int = Field(default=1, ge=0)

    interface_index: int = Field(
        default=2,
        ge=1,
        validation_alias=AliasChoices("TRAFFICWATCH_INTERFACE_INDEX", "INTERFACE_INDEX"),
    )
    # Comma separated ifIndex values the API will poll; the default index is always included.
    monitored_interfaces: Annotated[list[int], NoDecode] = Field(default_factory=list)

    # "snmp" polls device_host, "local" reads this host's NICs through psutil.
    sampler: Literal["snmp", "local"] = "snmp"
    local_interface: str | None = None

    poll_timeout: float = Field(default=5.0, gt=0)

    host: str = "127.0.0.1"
    port: int = Field(default=3002, ge=0, le=65535)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("sampler", mode="before")
    @classmethod
    def lower_sampler(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("monitored_interfaces", mode="before")
    @classmethod
    def split_interfaces(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part for part in v.replace(" ", ",").split(",") if part]
        return v

    @model_validator(mode="after")
    def include_default_interface(self) -> Settings:
        if any(index < 1 for index in self.monitored_interfaces):
            raise ValueError("monitored_interfaces must contain positive interface indexes")
        indexes = [self.interface_index, *self.monitored_interfaces]
        self.monitored_interfaces = sorted(set(indexes))
        return self


settings = Settings()

APP_NAME: str = "trafficwatch"

DEVICE_HOST: str = settings.device_host
SNMP_COMMUNITY: str = settings.snmp_community
SNMP_PORT: int = settings.snmp_port
SNMP_VERSION: str = settings.snmp_version
SNMP_USE_HC_COUNTERS: bool = settings.snmp_hc_counters
SNMP_RETRIES: int = settings.snmp_retries

INTERFACE_INDEX: int = settings.interface_index
MONITORED_INTERFACES: tuple[int, ...] = tuple(settings.monitored_interfaces)

SAMPLER_MODE: str = settings.sampler
LOCAL_INTERFACE: str | None = settings.local_interface

POLL_TIMEOUT_SECONDS: float = settings.poll_timeout

HTTP_HOST: str = settings.host
HTTP_PORT: int = settings.port

LOG_LEVEL: str = settings.log_level
