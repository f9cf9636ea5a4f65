from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthData(BaseModel):
    status: str


class HealthResponse(BaseModel):
    ok: bool
    data: HealthData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class TrafficData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_bits_per_second: int = Field(alias="inBitsPerSecond", ge=0)
    out_bits_per_second: int = Field(alias="outBitsPerSecond", ge=0)
    in_bytes_per_second: int = Field(alias="inBytesPerSecond", ge=0)
    out_bytes_per_second: int = Field(alias="outBytesPerSecond", ge=0)
    status: str
    message: str = ""


class TrafficResponse(BaseModel):
    ok: bool
    data: TrafficData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class InterfaceNameData(BaseModel):
    name: str


class InterfaceNameResponse(BaseModel):
    ok: bool
    data: InterfaceNameData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class InterfaceIpData(BaseModel):
    ip: str | None = None


class InterfaceIpResponse(BaseModel):
    ok: bool
    data: InterfaceIpData | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
