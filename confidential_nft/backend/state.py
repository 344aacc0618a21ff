"""State builders for registry snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from confidential_nft.backend.config import (
    DEFAULT_MAX_SUPPLY,
    DEFAULT_MINT_PRICE,
    DEFAULT_NAME,
    DEFAULT_SYMBOL,
)
from confidential_nft.backend.errors import InvalidAccount, InvalidAmount
from confidential_nft.backend.models import RegistryEvent, RegistryInfo, TokenRecord


@dataclass
class RegistryState:
    name: str
    symbol: str
    admin: str
    mint_price: int
    max_supply: int
    next_token_id: int = 0
    treasury_balance: int = 0
    tokens: dict[int, TokenRecord] = field(default_factory=dict)
    permissions: dict[tuple[int, str], bool] = field(default_factory=dict)
    log: list[RegistryEvent] = field(default_factory=list)
    event_offset: int = 0

    def emit(self, kind: str, data: dict[str, Any]) -> RegistryEvent:
        event = RegistryEvent(sequence=self.event_offset + len(self.log), kind=kind, data=data)
        self.log.append(event)
        return event

    def info(self) -> RegistryInfo:
        return RegistryInfo(
            name=self.name,
            symbol=self.symbol,
            admin=self.admin,
            mint_price=self.mint_price,
            max_supply=self.max_supply,
            next_token_id=self.next_token_id,
            treasury_balance=self.treasury_balance,
        )


def require_account(account: str) -> str:
    if not isinstance(account, str) or account == "":
        raise InvalidAccount("Account identifier must be a non-empty string")
    return account


def require_amount(amount: int, label: str = "amount") -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmount(f"{label} must be a non-negative integer")
    return amount


def build_initial_state(
    admin: str,
    name: str = DEFAULT_NAME,
    symbol: str = DEFAULT_SYMBOL,
    mint_price: int = DEFAULT_MINT_PRICE,
    max_supply: int = DEFAULT_MAX_SUPPLY,
) -> RegistryState:
    """Return a freshly deployed registry: no tokens, empty treasury."""
    return RegistryState(
        name=name,
        symbol=symbol,
        admin=require_account(admin),
        mint_price=require_amount(mint_price, "mint price"),
        max_supply=require_amount(max_supply, "max supply"),
    )
