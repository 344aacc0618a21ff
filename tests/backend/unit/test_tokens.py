import pytest

from confidential_nft.backend.errors import TokenNotFound
from confidential_nft.backend.models import EncryptedAttributes
from confidential_nft.backend.state import build_initial_state
from confidential_nft.backend.tokens import (
    create_token,
    get_token,
    set_owner,
    token_exists,
    tokens_of_owner,
)

ATTRIBUTES = EncryptedAttributes(rarity=b"\x12\x34", power=b"\x56\x78", level=b"\x9a\xbc", value=b"\xde\xf0")


def test_create_token_allocates_sequential_ids() -> None:
    state = build_initial_state(admin="0xOwner")

    ids = [create_token(state, owner="0xA", uri=f"https://example.com/{i}", attributes=ATTRIBUTES) for i in range(3)]

    assert ids == [0, 1, 2]
    assert state.next_token_id == 3
    assert get_token(state, 1).uri == "https://example.com/1"
    assert get_token(state, 1).attributes == ATTRIBUTES


def test_get_token_and_set_owner_fail_for_unknown_id() -> None:
    state = build_initial_state(admin="0xOwner")

    assert token_exists(state, 0) is False
    with pytest.raises(TokenNotFound):
        get_token(state, 0)
    with pytest.raises(TokenNotFound):
        set_owner(state, 0, "0xB")


def test_set_owner_keeps_uri_and_attributes() -> None:
    state = build_initial_state(admin="0xOwner")
    token_id = create_token(state, owner="0xA", uri="https://example.com/1", attributes=ATTRIBUTES)

    updated = set_owner(state, token_id, "0xB")

    assert updated.owner == "0xB"
    assert get_token(state, token_id).owner == "0xB"
    assert updated.uri == "https://example.com/1"
    assert updated.attributes == ATTRIBUTES


def test_tokens_of_owner_lists_ids_in_ascending_order() -> None:
    state = build_initial_state(admin="0xOwner")
    for owner in ("0xA", "0xB", "0xA", "0xA"):
        create_token(state, owner=owner, uri="", attributes=ATTRIBUTES)

    assert tokens_of_owner(state, "0xA") == [0, 2, 3]
