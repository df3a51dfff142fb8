from __future__ import annotations

import logging
from time import sleep
from typing import Any, Callable

from moralis import evm_api  # type: ignore

from domain.sampling import ProviderError

logger = logging.getLogger(__name__)


class MoralisAPIError(ProviderError):
    def __init__(self, message: str, *, endpoint: str, payload: Any | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.payload = payload


class MoralisClient:
    # https://docs.moralis.com/web3-data-api/evm/reference
    def __init__(self, api_key: str, *, chain: str = "eth", delay_seconds: float = 0.0) -> None:
        if not api_key:
            msg = "api_key must be provided"
            raise ValueError(msg)

        self.api_key = api_key
        self.chain = chain
        self.delay_seconds = delay_seconds

    def get_token_price(self, address: str, *, to_block: int, exchange: str | None = None) -> dict[str, Any]:
        params: dict[str, object] = {"address": address, "chain": self.chain, "to_block": to_block}
        if exchange:
            params["exchange"] = exchange
        return self._call("token.get_token_price", evm_api.token.get_token_price, params)

    def get_block(self, block_number: int) -> dict[str, Any]:
        params: dict[str, object] = {"chain": self.chain, "block_number_or_hash": str(block_number)}
        return self._call("block.get_block", evm_api.block.get_block, params)

    def get_date_to_block(self, date: str) -> dict[str, Any]:
        params: dict[str, object] = {"chain": self.chain, "date": date}
        return self._call("block.get_date_to_block", evm_api.block.get_date_to_block, params)

    def _call(self, endpoint: str, fn: Callable[..., Any], params: dict[str, object]) -> dict[str, Any]:
        if self.delay_seconds:
            sleep(self.delay_seconds)
        logger.debug("Calling Moralis %s params=%s", endpoint, params)
        try:
            response = fn(api_key=self.api_key, params=params)
        except Exception as exc:
            raise MoralisAPIError(f"Moralis {endpoint} request failed: {exc}", endpoint=endpoint) from exc

        if response is None:
            raise MoralisAPIError(f"Moralis {endpoint} returned no data", endpoint=endpoint)
        if not isinstance(response, dict):
            raise MoralisAPIError(
                f"Moralis {endpoint} returned unexpected payload type", endpoint=endpoint, payload=response
            )
        return response


__all__ = ["MoralisAPIError", "MoralisClient"]
