from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

BLOCK_TIME_MS = 1_000_000


@dataclass
class StubChain:
    """Deterministic chain: block N is mined at N * 1_000_000 ms and priced at 100 + N.

    `tip` caps time-to-block lookups the way a live provider does once the
    requested time is past the latest block.
    """

    tip: int | None = None
    calls: list[tuple[str, object]] = field(default_factory=list)

    def price_at(self, block: int) -> Decimal:
        self.calls.append(("price", block))
        return Decimal(100 + block)

    def timestamp_at(self, block: int) -> int:
        self.calls.append(("timestamp", block))
        return BLOCK_TIME_MS * block

    def block_at(self, epoch_seconds: float) -> int:
        self.calls.append(("block", epoch_seconds))
        block = int(epoch_seconds * 1000) // BLOCK_TIME_MS
        if self.tip is not None:
            block = min(block, self.tip)
        return block
