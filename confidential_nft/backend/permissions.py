"""Per-token view permissions gated by current ownership."""

from __future__ import annotations

from confidential_nft.backend.errors import NotOwner
from confidential_nft.backend.models import VIEW_PERMISSION_GRANTED, VIEW_PERMISSION_REVOKED, RegistryEvent
from confidential_nft.backend.state import RegistryState, require_account
from confidential_nft.backend.tokens import get_token, token_exists


def _require_owner(state: RegistryState, token_id: int, requester: str) -> None:
    record = get_token(state, token_id)
    if requester != record.owner:
        raise NotOwner(f"Not the owner of token {token_id}")


def record_owner_permission(state: RegistryState, token_id: int, owner: str) -> None:
    """Insert the explicit entry for a new owner; no event is emitted."""
    state.permissions[(token_id, owner)] = True


def grant_view_permission(state: RegistryState, token_id: int, viewer: str, requester: str) -> RegistryEvent:
    _require_owner(state, token_id, requester)
    require_account(viewer)
    state.permissions[(token_id, viewer)] = True
    return state.emit(VIEW_PERMISSION_GRANTED, {"token_id": token_id, "viewer": viewer})


def revoke_view_permission(state: RegistryState, token_id: int, viewer: str, requester: str) -> RegistryEvent:
    _require_owner(state, token_id, requester)
    require_account(viewer)
    state.permissions[(token_id, viewer)] = False
    return state.emit(VIEW_PERMISSION_REVOKED, {"token_id": token_id, "viewer": viewer})


def has_view_permission(state: RegistryState, token_id: int, viewer: str) -> bool:
    """Owner or explicit grant; unknown tokens answer ``False``."""
    if not token_exists(state, token_id):
        return False
    if get_token(state, token_id).owner == viewer:
        return True
    return state.permissions.get((token_id, viewer), False)
