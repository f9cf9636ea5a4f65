from __future__ import annotations

import time
from typing import Protocol

from trafficwatch.services.rate_engine import Sample


def now_ms() -> int:
    return int(time.time() * 1000)


class CounterSampler(Protocol):
    """Reads the octet counters of one interface."""

    counter_max: int

    async def fetch_counters(self) -> Sample: ...

    async def interface_name(self) -> str: ...

    async def interface_ip(self) -> str | None: ...

    async def close(self) -> None: ...
