import pytest

from confidential_nft.backend.errors import InvalidAccount, NotOwner, TokenNotFound
from confidential_nft.backend.models import EncryptedAttributes
from confidential_nft.backend.permissions import (
    grant_view_permission,
    has_view_permission,
    record_owner_permission,
    revoke_view_permission,
)
from confidential_nft.backend.state import RegistryState, build_initial_state
from confidential_nft.backend.tokens import create_token

ATTRIBUTES = EncryptedAttributes(rarity=b"\x12", power=b"\x34", level=b"\x56", value=b"\x78")


def _state_with_token(owner: str = "0xA") -> RegistryState:
    state = build_initial_state(admin="0xOwner")
    token_id = create_token(state, owner=owner, uri="https://example.com/1", attributes=ATTRIBUTES)
    record_owner_permission(state, token_id, owner)
    return state


def test_owner_grants_and_revokes_view_permission() -> None:
    state = _state_with_token()

    granted = grant_view_permission(state, 0, viewer="0xB", requester="0xA")

    assert granted.kind == "ViewPermissionGranted"
    assert granted.data == {"token_id": 0, "viewer": "0xB"}
    assert has_view_permission(state, 0, "0xB") is True

    revoked = revoke_view_permission(state, 0, viewer="0xB", requester="0xA")

    assert revoked.kind == "ViewPermissionRevoked"
    assert has_view_permission(state, 0, "0xB") is False
    assert [event.kind for event in state.log] == ["ViewPermissionGranted", "ViewPermissionRevoked"]


def test_non_owner_grant_fails_without_changing_permissions() -> None:
    state = _state_with_token()
    before = dict(state.permissions)

    with pytest.raises(NotOwner):
        grant_view_permission(state, 0, viewer="0xB", requester="0xB")
    with pytest.raises(NotOwner):
        revoke_view_permission(state, 0, viewer="0xA", requester="0xC")

    assert state.permissions == before
    assert state.log == []
    assert has_view_permission(state, 0, "0xB") is False


def test_grant_on_unknown_token_raises_not_found() -> None:
    state = build_initial_state(admin="0xOwner")

    with pytest.raises(TokenNotFound):
        grant_view_permission(state, 7, viewer="0xB", requester="0xA")


def test_grant_rejects_empty_viewer() -> None:
    state = _state_with_token()

    with pytest.raises(InvalidAccount):
        grant_view_permission(state, 0, viewer="", requester="0xA")


def test_has_view_permission_is_per_token_and_false_for_unknown_tokens() -> None:
    state = _state_with_token()
    create_token(state, owner="0xA", uri="", attributes=ATTRIBUTES)
    record_owner_permission(state, 1, "0xA")

    grant_view_permission(state, 0, viewer="0xB", requester="0xA")

    assert has_view_permission(state, 0, "0xB") is True
    assert has_view_permission(state, 1, "0xB") is False
    assert has_view_permission(state, 99, "0xA") is False


def test_owner_is_authorized_without_explicit_entry() -> None:
    state = build_initial_state(admin="0xOwner")
    create_token(state, owner="0xA", uri="", attributes=ATTRIBUTES)

    assert (0, "0xA") not in state.permissions
    assert has_view_permission(state, 0, "0xA") is True
