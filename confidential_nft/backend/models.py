"""Domain models for registry records, events and API-facing results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CONFIDENTIAL_MINT = "ConfidentialMint"
CONFIDENTIAL_TRANSFER = "ConfidentialTransfer"
VIEW_PERMISSION_GRANTED = "ViewPermissionGranted"
VIEW_PERMISSION_REVOKED = "ViewPermissionRevoked"


@dataclass(frozen=True)
class EncryptedAttributes:
    """Opaque ciphertexts; the registry stores them without inspection."""

    rarity: bytes
    power: bytes
    level: bytes
    value: bytes

    def as_hex(self) -> dict[str, str]:
        return {
            "rarity": "0x" + self.rarity.hex(),
            "power": "0x" + self.power.hex(),
            "level": "0x" + self.level.hex(),
            "value": "0x" + self.value.hex(),
        }


@dataclass(frozen=True)
class TokenRecord:
    token_id: int
    owner: str
    uri: str
    attributes: EncryptedAttributes


@dataclass(frozen=True)
class MintRequest:
    recipient: str
    uri: str
    attributes: EncryptedAttributes


@dataclass(frozen=True)
class RegistryEvent:
    sequence: int
    kind: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"sequence": self.sequence, "kind": self.kind, "data": dict(self.data)}


@dataclass(frozen=True)
class Withdrawal:
    recipient: str
    amount: int


@dataclass(frozen=True)
class RegistryInfo:
    name: str
    symbol: str
    admin: str
    mint_price: int
    max_supply: int
    next_token_id: int
    treasury_balance: int
