from __future__ import annotations

import asyncio
import socket

import psutil

from trafficwatch.collectors.base import now_ms
from trafficwatch.core.exceptions import SamplerError
from trafficwatch.services.rate_engine import MAX_COUNTER64, Sample


class LocalSampler:
    """Counters of a NIC on this host, read through psutil.

    The interface is picked by name when given, otherwise by the kernel
    interface index, which matches ifIndex on most SNMP agents running on
    the same box.
    """

    counter_max: int = MAX_COUNTER64

    def __init__(self, if_index: int, interface: str | None = None) -> None:
        self.if_index = if_index
        self._interface = interface

    def _resolve_name(self) -> str:
        if self._interface:
            return self._interface
        try:
            return socket.if_indextoname(self.if_index)
        except OSError as exc:
            raise SamplerError(f"No local interface with index {self.if_index}") from exc

    def _read_counters(self) -> Sample:
        name = self._resolve_name()
        counters = psutil.net_io_counters(pernic=True)
        nic = counters.get(name)
        if nic is None:
            raise SamplerError(f"Local interface {name!r} not found")
        return Sample(
            in_counter=int(nic.bytes_recv),
            out_counter=int(nic.bytes_sent),
            timestamp_ms=now_ms(),
        )

    def _read_ip(self) -> str | None:
        name = self._resolve_name()
        for addr in psutil.net_if_addrs().get(name, []):
            if addr.family == socket.AF_INET:
                return addr.address
        return None

    async def fetch_counters(self) -> Sample:
        return await asyncio.to_thread(self._read_counters)

    async def interface_name(self) -> str:
        return self._resolve_name()

    async def interface_ip(self) -> str | None:
        return await asyncio.to_thread(self._read_ip)

    async def close(self) -> None:
        return None
