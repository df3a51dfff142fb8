from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterator, Protocol

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000
MS_PER_SECOND = 1_000


class SamplingError(Exception):
    """Base class for failures raised by the sampler itself."""


class InvalidRangeError(SamplingError):
    def __init__(self, start_block: int, end_block: int) -> None:
        super().__init__(f"End block {end_block} smaller than start block {start_block}")
        self.start_block = start_block
        self.end_block = end_block


class NumericError(SamplingError):
    def __init__(self, message: str, *, block: int, value: object = None) -> None:
        super().__init__(message)
        self.block = block
        self.value = value


class ProviderError(RuntimeError):
    """Raised by capability implementations when a lookup fails."""


@dataclass(frozen=True)
class Sample:
    """One price observation taken at a block."""

    block: int
    timestamp: int  # epoch milliseconds
    price: Decimal

    def to_dict(self) -> dict[str, object]:
        return {"block": self.block, "timestamp": self.timestamp, "price": str(self.price)}


@dataclass(frozen=True)
class SamplingRequest:
    start_block: int
    end_block: int
    interval_minutes: float

    def __post_init__(self) -> None:
        if self.start_block < 0:
            msg = "start_block must be >= 0"
            raise ValueError(msg)
        if isinstance(self.interval_minutes, bool) or not isinstance(self.interval_minutes, (int, float)):
            msg = "interval_minutes must be a number"
            raise ValueError(msg)
        if not math.isfinite(self.interval_minutes) or self.interval_minutes <= 0:
            msg = "interval_minutes must be a finite number > 0"
            raise ValueError(msg)


class PriceLookup(Protocol):
    def price_at(self, block: int) -> Decimal: ...


class TimestampLookup(Protocol):
    def timestamp_at(self, block: int) -> int: ...


class BlockByTime(Protocol):
    def block_at(self, epoch_seconds: float) -> int: ...


SampleHook = Callable[[Sample], None]


def next_sample_time(block_timestamp_ms: object, interval_minutes: float, *, block: int) -> float:
    """Return the next target time in epoch seconds.

    Block timestamps come back in milliseconds while the time-to-block lookup
    takes seconds, so the interval is added in milliseconds and the sum rescaled.
    """
    if isinstance(block_timestamp_ms, bool):
        raise NumericError("Block timestamp is not a number", block=block, value=block_timestamp_ms)
    try:
        next_time = (block_timestamp_ms + interval_minutes * MS_PER_MINUTE) / MS_PER_SECOND  # type: ignore[operator]
        finite = math.isfinite(next_time)
    except (TypeError, ValueError, OverflowError) as exc:
        raise NumericError("Block timestamp is not a number", block=block, value=block_timestamp_ms) from exc
    if not finite:
        raise NumericError("Next sample time is not a finite number", block=block, value=next_time)
    if isinstance(block_timestamp_ms, float) and not block_timestamp_ms.is_integer():
        raise NumericError(
            "Block timestamp is not a whole number of milliseconds", block=block, value=block_timestamp_ms
        )
    return float(next_time)


class IntervalSampler:
    """Walks a block range, taking one price sample every `interval_minutes`.

    Blocks can't be addressed by time directly, so each step asks the provider
    for the block closest to (last block time + interval). Once the target time
    passes the chain tip the provider keeps returning the same block and the run
    stops there, so a range ending beyond the latest block finishes early with a
    short last interval.
    """

    def __init__(
        self,
        price_lookup: PriceLookup,
        timestamp_lookup: TimestampLookup,
        block_by_time: BlockByTime,
        *,
        on_sample: SampleHook | None = None,
    ) -> None:
        self.price_lookup = price_lookup
        self.timestamp_lookup = timestamp_lookup
        self.block_by_time = block_by_time
        self.on_sample = on_sample

    def sample(self, request: SamplingRequest) -> list[Sample]:
        return list(self.iter_samples(request))

    def iter_samples(self, request: SamplingRequest) -> Iterator[Sample]:
        if request.end_block < request.start_block:
            raise InvalidRangeError(request.start_block, request.end_block)
        return self._run(request)

    def _run(self, request: SamplingRequest) -> Iterator[Sample]:
        current = request.start_block
        previous: int | None = None

        while current < request.end_block and (previous is None or current > previous):
            price = self.price_lookup.price_at(current)
            block_time = self.timestamp_lookup.timestamp_at(current)
            next_time = next_sample_time(block_time, request.interval_minutes, block=current)

            previous = current
            current = self.block_by_time.block_at(next_time)

            sample = Sample(block=previous, timestamp=int(block_time), price=price)
            logger.debug(
                "Sampled block=%d timestamp=%d price=%s next_block=%d",
                sample.block,
                sample.timestamp,
                sample.price,
                current,
            )
            if self.on_sample is not None:
                self.on_sample(sample)
            yield sample

        if previous is not None and current <= previous and current < request.end_block:
            logger.info(
                "Stopped at block %d before end block %d: no newer block for the next interval",
                previous,
                request.end_block,
            )


__all__ = [
    "BlockByTime",
    "IntervalSampler",
    "InvalidRangeError",
    "NumericError",
    "PriceLookup",
    "ProviderError",
    "Sample",
    "SampleHook",
    "SamplingError",
    "SamplingRequest",
    "TimestampLookup",
    "next_sample_time",
]
