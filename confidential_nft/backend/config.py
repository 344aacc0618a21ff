"""Configuration helpers for registry runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_NAME = "ConfidentialNFT"
DEFAULT_SYMBOL = "CNFT"
DEFAULT_MINT_PRICE = 10**16
DEFAULT_MAX_SUPPLY = 10_000


@dataclass(frozen=True)
class RegistrySettings:
    name: str
    symbol: str
    admin: str
    mint_price: int
    max_supply: int
    database_url: str | None
    host: str
    port: int
    log_level: str


def load_settings() -> RegistrySettings:
    return RegistrySettings(
        name=os.getenv("CNFT_NAME", DEFAULT_NAME),
        symbol=os.getenv("CNFT_SYMBOL", DEFAULT_SYMBOL),
        admin=os.getenv("CNFT_ADMIN", "dev-admin"),
        mint_price=int(os.getenv("CNFT_MINT_PRICE_WEI", str(DEFAULT_MINT_PRICE))),
        max_supply=int(os.getenv("CNFT_MAX_SUPPLY", str(DEFAULT_MAX_SUPPLY))),
        database_url=os.getenv("CNFT_DATABASE_URL"),
        host=os.getenv("CNFT_HOST", "127.0.0.1"),
        port=int(os.getenv("CNFT_PORT", "8000")),
        log_level=os.getenv("CNFT_LOG_LEVEL", "INFO").upper(),
    )
