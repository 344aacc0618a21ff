"""Registry operations: minting, transfer, pricing and treasury.

Each operation validates every input before its first write, so a raised
``RegistryError`` always leaves ``RegistryState`` untouched. Successful
operations return the value the caller asked for plus the events they
appended to the registry log.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from confidential_nft.backend.errors import ArrayLengthMismatch, NotAdmin, NotAuthorizedViewer, NotOwner, NothingToWithdraw
from confidential_nft.backend.guard import validate_mint
from confidential_nft.backend.models import (
    CONFIDENTIAL_MINT,
    CONFIDENTIAL_TRANSFER,
    EncryptedAttributes,
    MintRequest,
    RegistryEvent,
    Withdrawal,
)
from confidential_nft.backend.permissions import has_view_permission, record_owner_permission
from confidential_nft.backend.state import RegistryState, require_account, require_amount
from confidential_nft.backend.tokens import create_token, get_token, set_owner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    value: Any
    events: list[RegistryEvent] = field(default_factory=list)


def build_mint_requests(
    recipients: Sequence[str],
    uris: Sequence[str],
    enc_rarity: Sequence[bytes],
    enc_power: Sequence[bytes],
    enc_level: Sequence[bytes],
    enc_value: Sequence[bytes],
) -> list[MintRequest]:
    """Zip the parallel batch arrays into per-token requests."""
    lengths = {len(recipients), len(uris), len(enc_rarity), len(enc_power), len(enc_level), len(enc_value)}
    if len(lengths) != 1:
        raise ArrayLengthMismatch("Arrays length mismatch")
    return [
        MintRequest(
            recipient=recipient,
            uri=uri,
            attributes=EncryptedAttributes(rarity=rarity, power=power, level=level, value=value),
        )
        for recipient, uri, rarity, power, level, value in zip(
            recipients, uris, enc_rarity, enc_power, enc_level, enc_value
        )
    ]


def mint_single(
    state: RegistryState,
    recipient: str,
    uri: str,
    attributes: EncryptedAttributes,
    payment: int,
) -> OperationResult:
    result = mint_batch(state, [MintRequest(recipient=recipient, uri=uri, attributes=attributes)], payment)
    return OperationResult(value=result.value[0], events=result.events)


def mint_batch(state: RegistryState, requests: Sequence[MintRequest], payment: int) -> OperationResult:
    for request in requests:
        require_account(request.recipient)
    validate_mint(
        mint_price=state.mint_price,
        max_supply=state.max_supply,
        current_supply=state.next_token_id,
        count=len(requests),
        payment=payment,
    )

    token_ids: list[int] = []
    events: list[RegistryEvent] = []
    for request in requests:
        token_id = create_token(state, owner=request.recipient, uri=request.uri, attributes=request.attributes)
        record_owner_permission(state, token_id, request.recipient)
        token_ids.append(token_id)
        events.append(state.emit(CONFIDENTIAL_MINT, {"recipient": request.recipient, "token_id": token_id}))
    state.treasury_balance += payment

    logger.info("Minted tokens %s (payment=%d)", token_ids, payment)
    return OperationResult(value=token_ids, events=events)


def transfer(
    state: RegistryState,
    token_id: int,
    from_account: str,
    to_account: str,
    requester: str,
) -> OperationResult:
    """Move ownership to ``to_account``; prior grants are left in place."""
    record = get_token(state, token_id)
    if requester != from_account or record.owner != from_account:
        raise NotOwner(f"Not the owner of token {token_id}")
    require_account(to_account)

    set_owner(state, token_id, to_account)
    record_owner_permission(state, token_id, to_account)
    event = state.emit(CONFIDENTIAL_TRANSFER, {"from": from_account, "to": to_account, "token_id": token_id})
    logger.info("Transferred token %d from %s to %s", token_id, from_account, to_account)
    return OperationResult(value=token_id, events=[event])


def get_attributes(state: RegistryState, token_id: int, viewer: str) -> EncryptedAttributes:
    record = get_token(state, token_id)
    if not has_view_permission(state, token_id, viewer):
        raise NotAuthorizedViewer(f"{viewer} may not view token {token_id}")
    return record.attributes


def _require_admin(state: RegistryState, requester: str) -> None:
    if requester != state.admin:
        raise NotAdmin("Caller is not the admin")


def set_mint_price(state: RegistryState, new_price: int, requester: str) -> OperationResult:
    _require_admin(state, requester)
    state.mint_price = require_amount(new_price, "mint price")
    logger.info("Mint price set to %d", new_price)
    return OperationResult(value=new_price)


def withdraw(state: RegistryState, requester: str) -> OperationResult:
    _require_admin(state, requester)
    amount = state.treasury_balance
    if amount == 0:
        raise NothingToWithdraw("Treasury balance is zero")
    state.treasury_balance = 0
    logger.info("Withdrew %d to %s", amount, state.admin)
    return OperationResult(value=Withdrawal(recipient=state.admin, amount=amount))
