from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, TypeVar

from trafficwatch.collectors.base import CounterSampler
from trafficwatch.core.config import POLL_TIMEOUT_SECONDS
from trafficwatch.core.exceptions import SamplerTimeoutError, UnknownInterfaceError
from trafficwatch.services.rate_engine import RateEngine, RateResult, RateStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

SamplerFactory = Callable[[int], CounterSampler]


class TrafficMonitor:
    """One interface: a sampler feeding its own rate engine.

    Fetch failures surface as :class:`SamplerError` and never reach the
    engine, so the last good sample stays the reference for the next poll.
    """

    def __init__(
        self,
        if_index: int,
        sampler: CounterSampler,
        *,
        timeout_seconds: float = POLL_TIMEOUT_SECONDS,
    ) -> None:
        self.if_index = if_index
        self.sampler = sampler
        self.engine = RateEngine(counter_max=sampler.counter_max)
        self._timeout_seconds = timeout_seconds
        self._lock = asyncio.Lock()

    async def _bounded(self, what: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(call(), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            raise SamplerTimeoutError(
                f"{what} for interface {self.if_index} timed out after {self._timeout_seconds:g}s"
            ) from None

    async def poll(self) -> RateResult:
        # Held across the fetch so samples reach the engine in fetch order.
        async with self._lock:
            sample = await self._bounded("Counter fetch", self.sampler.fetch_counters)
            result = self.engine.update(sample)
        if result.status is RateStatus.OK:
            logger.debug(
                "if=%d in=%d bps out=%d bps",
                self.if_index,
                result.in_bits_per_second,
                result.out_bits_per_second,
            )
        return result

    async def interface_name(self) -> str:
        return await self._bounded("Interface name lookup", self.sampler.interface_name)

    async def interface_ip(self) -> str | None:
        return await self._bounded("Interface address lookup", self.sampler.interface_ip)

    async def close(self) -> None:
        try:
            await self.sampler.close()
        except Exception:
            logger.exception("Failed to close sampler for interface %d", self.if_index)


class MonitorRegistry:
    """Independent monitors keyed by interface index, created on first use.

    With ``allowed`` set, only those indexes get a monitor; anything else
    raises :class:`UnknownInterfaceError` without creating a sampler.
    """

    def __init__(
        self,
        sampler_factory: SamplerFactory,
        *,
        allowed: Iterable[int] | None = None,
        timeout_seconds: float = POLL_TIMEOUT_SECONDS,
    ) -> None:
        self._sampler_factory = sampler_factory
        self.allowed: frozenset[int] | None = None if allowed is None else frozenset(allowed)
        self._timeout_seconds = timeout_seconds
        self._monitors: dict[int, TrafficMonitor] = {}

    def get(self, if_index: int) -> TrafficMonitor:
        monitor = self._monitors.get(if_index)
        if monitor is None:
            if self.allowed is not None and if_index not in self.allowed:
                raise UnknownInterfaceError(if_index)
            monitor = TrafficMonitor(
                if_index,
                self._sampler_factory(if_index),
                timeout_seconds=self._timeout_seconds,
            )
            self._monitors[if_index] = monitor
            logger.info("Monitoring interface %d", if_index)
        return monitor

    def __contains__(self, if_index: object) -> bool:
        return if_index in self._monitors

    def __len__(self) -> int:
        return len(self._monitors)

    async def close_all(self) -> None:
        monitors = list(self._monitors.values())
        self._monitors.clear()
        for monitor in monitors:
            await monitor.close()


def build_sampler_factory() -> SamplerFactory:
    """Sampler factory for the configured mode."""
    from trafficwatch.core import config

    if config.SAMPLER_MODE == "local":
        from trafficwatch.collectors.local import LocalSampler

        return lambda if_index: LocalSampler(if_index, interface=config.LOCAL_INTERFACE)

    from trafficwatch.collectors.snmp import SnmpSampler

    return lambda if_index: SnmpSampler(
        config.DEVICE_HOST,
        if_index,
        community=config.SNMP_COMMUNITY,
        port=config.SNMP_PORT,
        version=config.SNMP_VERSION,
        high_capacity=config.SNMP_USE_HC_COUNTERS,
        timeout=config.POLL_TIMEOUT_SECONDS / (config.SNMP_RETRIES + 1),
        retries=config.SNMP_RETRIES,
    )
