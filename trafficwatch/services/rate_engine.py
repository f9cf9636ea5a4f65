"""Per-second throughput derived from successive interface octet counters.

A :class:`RateEngine` follows exactly one counter stream. Each call to
:meth:`RateEngine.update` compares the new sample with the one kept from
the previous call, then keeps the new sample whatever the outcome.

Counters are treated as monotonically increasing and wrapping at
``counter_max``. A decrease between two samples is read as exactly one
wrap; a counter that wraps more than once within a single interval is
undercounted.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from fractions import Fraction

from trafficwatch.core.exceptions import SampleValidationError

logger = logging.getLogger(__name__)

MAX_COUNTER64: int = 2**64 - 1
MAX_COUNTER32: int = 2**32 - 1

BITS_PER_BYTE: int = 8

FIRST_SAMPLE_MESSAGE = "First sample collected; rates will be computed on the next poll."
DEGENERATE_INTERVAL_MESSAGE = (
    "Invalid or too short interval between samples; rates were not computed."
)


class RateStatus(str, enum.Enum):
    FIRST_SAMPLE = "FIRST_SAMPLE"
    OK = "OK"
    DEGENERATE_INTERVAL = "DEGENERATE_INTERVAL"


@dataclass(frozen=True, slots=True)
class Sample:
    in_counter: int
    out_counter: int
    timestamp_ms: int


@dataclass(frozen=True, slots=True)
class RateResult:
    in_bits_per_second: int
    out_bits_per_second: int
    in_bytes_per_second: int
    out_bytes_per_second: int
    status: RateStatus
    message: str = ""

    @classmethod
    def zero(cls, status: RateStatus, message: str) -> RateResult:
        return cls(0, 0, 0, 0, status=status, message=message)

    def to_dict(self) -> dict[str, object]:
        return {
            "inBitsPerSecond": self.in_bits_per_second,
            "outBitsPerSecond": self.out_bits_per_second,
            "inBytesPerSecond": self.in_bytes_per_second,
            "outBytesPerSecond": self.out_bytes_per_second,
            "status": self.status.value,
            "message": self.message,
        }


@dataclass(slots=True)
class EngineState:
    last_sample: Sample | None = None

    @property
    def initialized(self) -> bool:
        return self.last_sample is not None


def counter_delta(previous: int, current: int, counter_max: int = MAX_COUNTER64) -> int:
    """Octets counted between two readings of a wrapping counter."""
    raw = current - previous
    if raw < 0:
        return (counter_max - previous) + current
    return raw


def round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


@dataclass
class RateEngine:
    counter_max: int = MAX_COUNTER64
    state: EngineState = field(default_factory=EngineState)

    def update(self, sample: Sample) -> RateResult:
        self._validate(sample)

        previous = self.state.last_sample
        self.state.last_sample = sample

        if previous is None:
            logger.debug("First sample at t=%d ms", sample.timestamp_ms)
            return RateResult.zero(RateStatus.FIRST_SAMPLE, FIRST_SAMPLE_MESSAGE)

        elapsed_ms = sample.timestamp_ms - previous.timestamp_ms
        if elapsed_ms <= 0:
            logger.info(
                "Degenerate sampling interval: %d ms (previous t=%d, current t=%d)",
                elapsed_ms,
                previous.timestamp_ms,
                sample.timestamp_ms,
            )
            return RateResult.zero(RateStatus.DEGENERATE_INTERVAL, DEGENERATE_INTERVAL_MESSAGE)

        in_delta = counter_delta(previous.in_counter, sample.in_counter, self.counter_max)
        out_delta = counter_delta(previous.out_counter, sample.out_counter, self.counter_max)

        # Exact rational: octets * 1000 / elapsed milliseconds.
        in_bytes = Fraction(in_delta * 1000, elapsed_ms)
        out_bytes = Fraction(out_delta * 1000, elapsed_ms)

        return RateResult(
            in_bits_per_second=round_half_up(in_bytes * BITS_PER_BYTE),
            out_bits_per_second=round_half_up(out_bytes * BITS_PER_BYTE),
            in_bytes_per_second=round_half_up(in_bytes),
            out_bytes_per_second=round_half_up(out_bytes),
            status=RateStatus.OK,
            message="",
        )

    def _validate(self, sample: Sample) -> None:
        for name in ("in_counter", "out_counter"):
            value = getattr(sample, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise SampleValidationError(f"{name} must be an integer, got {type(value).__name__}")
            if value < 0 or value > self.counter_max:
                raise SampleValidationError(
                    f"{name}={value} is outside the counter range [0, {self.counter_max}]"
                )
        ts = sample.timestamp_ms
        if not isinstance(ts, int) or isinstance(ts, bool):
            raise SampleValidationError(f"timestamp_ms must be an integer, got {type(ts).__name__}")
        if ts < 0:
            raise SampleValidationError(f"timestamp_ms={ts} is negative")
