from __future__ import annotations

import asyncio
from collections import deque

import pytest

from trafficwatch.core.config import INTERFACE_INDEX
from trafficwatch.services.monitor import MonitorRegistry
from trafficwatch.services.rate_engine import MAX_COUNTER64, Sample

MONITORED = {INTERFACE_INDEX, 2, 3, 4, 5, 7}


class FakeSampler:
    """Hands out queued samples; queued exceptions are raised instead."""

    def __init__(
        self,
        items=(),
        *,
        name: str = "ether2",
        ip: str | None = "192.168.56.3",
        delay: float = 0.0,
        counter_max: int = MAX_COUNTER64,
    ) -> None:
        self.items = deque(items)
        self.name = name
        self.ip = ip
        self.delay = delay
        self.counter_max = counter_max
        self.fetches = 0
        self.closed = False

    def push(self, *items) -> None:
        self.items.extend(items)

    async def fetch_counters(self) -> Sample:
        self.fetches += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.items.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    async def interface_name(self) -> str:
        if isinstance(self.name, Exception):
            raise self.name
        return self.name

    async def interface_ip(self) -> str | None:
        if isinstance(self.ip, Exception):
            raise self.ip
        return self.ip

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def samplers() -> dict[int, FakeSampler]:
    return {}


@pytest.fixture
def registry(samplers) -> MonitorRegistry:
    def factory(if_index: int) -> FakeSampler:
        return samplers.setdefault(if_index, FakeSampler())

    return MonitorRegistry(factory, allowed=MONITORED, timeout_seconds=0.5)
