from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
SAMPLES_DB_FILE = ARTIFACTS_DIR / "block_samples.db"

# AAVE token, priced on sushiswap
DEFAULT_TOKEN_ADDRESS = "0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9"


class AppSettings(BaseSettings):
    moralis_api_key: str
    moralis_chain: str = "eth"
    token_address: str = DEFAULT_TOKEN_ADDRESS
    exchange: str | None = "sushiswap"
    samples_db_path: Path = SAMPLES_DB_FILE

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()  # type: ignore[call-arg]
