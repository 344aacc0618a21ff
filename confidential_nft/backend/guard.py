"""Supply and pricing checks run before any mint mutates state."""

from __future__ import annotations

from confidential_nft.backend.errors import (
    BatchTooLarge,
    EmptyBatch,
    InsufficientPayment,
    SupplyExceeded,
)
from confidential_nft.backend.state import require_amount

MAX_BATCH_SIZE = 10


def validate_mint(mint_price: int, max_supply: int, current_supply: int, count: int, payment: int) -> None:
    """Raise the first rule a mint of ``count`` tokens would break.

    Order matters: batch size, then payment, then remaining supply.
    """
    if count < 1:
        raise EmptyBatch("At least one token must be minted")
    if count > MAX_BATCH_SIZE:
        raise BatchTooLarge(f"Too many tokens to mint: {count} > {MAX_BATCH_SIZE}")

    require_amount(payment, "payment")
    required = mint_price * count
    if payment < required:
        raise InsufficientPayment(f"Insufficient payment: {payment} < {required}")

    if current_supply + count > max_supply:
        raise SupplyExceeded(f"Max supply exceeded: {current_supply} + {count} > {max_supply}")
