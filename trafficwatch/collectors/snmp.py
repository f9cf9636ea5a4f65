from __future__ import annotations

import logging
from typing import Any

from pysnmp.error import PySnmpError
from pysnmp.hlapi.v3arch.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    UdpTransportTarget,
    get_cmd,
    walk_cmd,
)
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject

from trafficwatch.collectors.base import now_ms
from trafficwatch.core.exceptions import SamplerError
from trafficwatch.services.rate_engine import MAX_COUNTER32, MAX_COUNTER64, Sample

logger = logging.getLogger(__name__)

# IF-MIB / IP-MIB columns; the interface index is appended as the row suffix.
IF_DESCR_OID = "1.3.6.1.2.1.2.2.1.2"
IF_IN_OCTETS_OID = "1.3.6.1.2.1.2.2.1.10"
IF_OUT_OCTETS_OID = "1.3.6.1.2.1.2.2.1.16"
IF_HC_IN_OCTETS_OID = "1.3.6.1.2.1.31.1.1.1.6"
IF_HC_OUT_OCTETS_OID = "1.3.6.1.2.1.31.1.1.1.10"
IP_AD_ENT_IF_INDEX_OID = "1.3.6.1.2.1.4.20.1.2"

_MISSING_VALUE_TYPES = (NoSuchObject, NoSuchInstance, EndOfMibView)


def counter_oids(if_index: int, *, high_capacity: bool = True) -> tuple[str, str]:
    if high_capacity:
        return f"{IF_HC_IN_OCTETS_OID}.{if_index}", f"{IF_HC_OUT_OCTETS_OID}.{if_index}"
    return f"{IF_IN_OCTETS_OID}.{if_index}", f"{IF_OUT_OCTETS_OID}.{if_index}"


def ip_from_address_oid(oid: str) -> str:
    """ipAdEntIfIndex rows are indexed by the address itself: ``...4.20.1.2.a.b.c.d``."""
    parts = oid.split(".")
    if len(parts) < 4:
        raise ValueError(f"OID {oid!r} does not end with an IPv4 address")
    return ".".join(parts[-4:])


class SnmpSampler:
    """Polls one interface of a remote device over SNMP v1/v2c."""

    def __init__(
        self,
        host: str,
        if_index: int,
        *,
        community: str = "public",
        port: int = 161,
        version: str = "2c",
        high_capacity: bool = True,
        timeout: float = 2.0,
        retries: int = 1,
    ) -> None:
        self.host = host
        self.port = port
        self.if_index = if_index
        self.high_capacity = high_capacity
        self.counter_max = MAX_COUNTER64 if high_capacity else MAX_COUNTER32
        self._auth = CommunityData(community, mpModel=0 if version == "1" else 1)
        self._timeout = timeout
        self._retries = retries
        self._engine: SnmpEngine | None = None
        self._in_oid, self._out_oid = counter_oids(if_index, high_capacity=high_capacity)

    def _get_engine(self) -> SnmpEngine:
        if self._engine is None:
            self._engine = SnmpEngine()
        return self._engine

    async def _target(self) -> UdpTransportTarget:
        try:
            return await UdpTransportTarget.create(
                (self.host, self.port), timeout=self._timeout, retries=self._retries
            )
        except PySnmpError as exc:
            raise SamplerError(f"Cannot reach {self.host}:{self.port}: {exc}", host=self.host) from exc

    def _check_response(self, error_indication: Any, error_status: Any, error_index: Any) -> None:
        if error_indication:
            raise SamplerError(f"SNMP request to {self.host} failed: {error_indication}", host=self.host)
        if error_status:
            raise SamplerError(
                f"SNMP error from {self.host}: {error_status.prettyPrint()} at index {error_index}",
                host=self.host,
            )

    async def _get(self, *oids: str) -> list[tuple[Any, Any]]:
        target = await self._target()
        try:
            error_indication, error_status, error_index, var_binds = await get_cmd(
                self._get_engine(),
                self._auth,
                target,
                ContextData(),
                *(ObjectType(ObjectIdentity(oid)) for oid in oids),
            )
        except PySnmpError as exc:
            raise SamplerError(f"SNMP request to {self.host} failed: {exc}", host=self.host) from exc

        self._check_response(error_indication, error_status, error_index)
        for name, value in var_binds:
            if isinstance(value, _MISSING_VALUE_TYPES):
                raise SamplerError(f"{name.prettyPrint()} is not available on {self.host}", host=self.host)
        return list(var_binds)

    async def fetch_counters(self) -> Sample:
        var_binds = await self._get(self._in_oid, self._out_oid)
        timestamp_ms = now_ms()
        if len(var_binds) != 2:
            raise SamplerError(
                f"Expected 2 counters from {self.host}, got {len(var_binds)}", host=self.host
            )
        try:
            in_counter = int(var_binds[0][1])
            out_counter = int(var_binds[1][1])
        except (TypeError, ValueError) as exc:
            raise SamplerError(f"Non-numeric counter value from {self.host}", host=self.host) from exc
        logger.debug("%s if=%d in=%d out=%d", self.host, self.if_index, in_counter, out_counter)
        return Sample(in_counter=in_counter, out_counter=out_counter, timestamp_ms=timestamp_ms)

    async def interface_name(self) -> str:
        var_binds = await self._get(f"{IF_DESCR_OID}.{self.if_index}")
        return str(var_binds[0][1])

    async def interface_ip(self) -> str | None:
        target = await self._target()
        try:
            async for error_indication, error_status, error_index, var_binds in walk_cmd(
                self._get_engine(),
                self._auth,
                target,
                ContextData(),
                ObjectType(ObjectIdentity(IP_AD_ENT_IF_INDEX_OID)),
                lexicographicMode=False,
            ):
                self._check_response(error_indication, error_status, error_index)
                for name, value in var_binds:
                    if isinstance(value, _MISSING_VALUE_TYPES):
                        continue
                    try:
                        if int(value) == self.if_index:
                            return ip_from_address_oid(str(name))
                    except (TypeError, ValueError) as exc:
                        raise SamplerError(
                            f"Malformed ipAdEntIfIndex row from {self.host}: {name} = {value!r}",
                            host=self.host,
                        ) from exc
        except PySnmpError as exc:
            raise SamplerError(f"SNMP walk on {self.host} failed: {exc}", host=self.host) from exc
        return None

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.close_dispatcher()
            self._engine = None
