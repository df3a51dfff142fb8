from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from clients.moralis import MoralisAPIError, MoralisClient
from config import AppSettings
from domain.sampling import IntervalSampler, SampleHook

PRICE_ENDPOINT = "token.get_token_price"
BLOCK_ENDPOINT = "block.get_block"
DATE_TO_BLOCK_ENDPOINT = "block.get_date_to_block"


def _parse_block_timestamp_ms(value: Any) -> int:
    """Moralis returns ISO-8601 strings for block timestamps; epoch seconds are accepted too."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value * 1000)
    if isinstance(value, str):
        raw = value.strip()
        if raw.isdigit():
            return int(raw) * 1000
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(round(parsed.timestamp() * 1000))
    msg = f"Unsupported block timestamp: {value!r}"
    raise ValueError(msg)


class MoralisPriceLookup:
    def __init__(self, client: MoralisClient, token_address: str, *, exchange: str | None = None) -> None:
        self.client = client
        self.token_address = token_address
        self.exchange = exchange

    def price_at(self, block: int) -> Decimal:
        payload = self.client.get_token_price(self.token_address, to_block=block, exchange=self.exchange)
        raw = payload.get("usdPrice")
        if raw is None:
            raise MoralisAPIError("Moralis token price missing usdPrice", endpoint=PRICE_ENDPOINT, payload=payload)
        try:
            price = Decimal(str(raw))
        except InvalidOperation as exc:
            raise MoralisAPIError(
                "Moralis token price is not numeric", endpoint=PRICE_ENDPOINT, payload=payload
            ) from exc
        if not price.is_finite():
            raise MoralisAPIError("Moralis token price is not finite", endpoint=PRICE_ENDPOINT, payload=payload)
        if price < 0:
            raise MoralisAPIError("Moralis token price is negative", endpoint=PRICE_ENDPOINT, payload=payload)
        return price


class MoralisTimestampLookup:
    def __init__(self, client: MoralisClient) -> None:
        self.client = client

    def timestamp_at(self, block: int) -> int:
        payload = self.client.get_block(block)
        raw = payload.get("timestamp")
        if raw is None:
            raise MoralisAPIError("Moralis block missing timestamp", endpoint=BLOCK_ENDPOINT, payload=payload)
        try:
            return _parse_block_timestamp_ms(raw)
        except ValueError as exc:
            raise MoralisAPIError(
                "Moralis block timestamp unparseable", endpoint=BLOCK_ENDPOINT, payload=payload
            ) from exc


class MoralisBlockByTime:
    def __init__(self, client: MoralisClient) -> None:
        self.client = client

    def block_at(self, epoch_seconds: float) -> int:
        # the endpoint accepts any date string, epoch seconds included
        seconds = float(epoch_seconds)
        date = str(int(seconds)) if seconds.is_integer() else repr(seconds)
        payload = self.client.get_date_to_block(date)
        raw = payload.get("block")
        if raw is None:
            raise MoralisAPIError(
                "Moralis date-to-block missing block", endpoint=DATE_TO_BLOCK_ENDPOINT, payload=payload
            )
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise MoralisAPIError(
                "Moralis date-to-block returned non-integer block", endpoint=DATE_TO_BLOCK_ENDPOINT, payload=payload
            ) from exc


def build_moralis_sampler(
    settings: AppSettings,
    *,
    token_address: str | None = None,
    exchange: str | None = None,
    chain: str | None = None,
    on_sample: SampleHook | None = None,
) -> IntervalSampler:
    client = MoralisClient(api_key=settings.moralis_api_key, chain=chain or settings.moralis_chain)
    return IntervalSampler(
        MoralisPriceLookup(client, token_address or settings.token_address, exchange=exchange or settings.exchange),
        MoralisTimestampLookup(client),
        MoralisBlockByTime(client),
        on_sample=on_sample,
    )


__all__ = ["MoralisBlockByTime", "MoralisPriceLookup", "MoralisTimestampLookup", "build_moralis_sampler"]
