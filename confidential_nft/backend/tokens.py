"""Token records: id allocation, lookup and owner updates."""

from __future__ import annotations

from dataclasses import replace

from confidential_nft.backend.errors import TokenNotFound
from confidential_nft.backend.models import EncryptedAttributes, TokenRecord
from confidential_nft.backend.state import RegistryState


def create_token(state: RegistryState, owner: str, uri: str, attributes: EncryptedAttributes) -> int:
    """Store a new record under the next sequential id and return that id."""
    token_id = state.next_token_id
    state.tokens[token_id] = TokenRecord(token_id=token_id, owner=owner, uri=uri, attributes=attributes)
    state.next_token_id = token_id + 1
    return token_id


def token_exists(state: RegistryState, token_id: int) -> bool:
    return token_id in state.tokens


def get_token(state: RegistryState, token_id: int) -> TokenRecord:
    record = state.tokens.get(token_id)
    if record is None:
        raise TokenNotFound(token_id)
    return record


def set_owner(state: RegistryState, token_id: int, new_owner: str) -> TokenRecord:
    record = get_token(state, token_id)
    updated = replace(record, owner=new_owner)
    state.tokens[token_id] = updated
    return updated


def tokens_of_owner(state: RegistryState, owner: str) -> list[int]:
    return [token_id for token_id, record in sorted(state.tokens.items()) if record.owner == owner]
