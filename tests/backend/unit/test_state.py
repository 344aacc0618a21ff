import pytest

from confidential_nft.backend.errors import InvalidAccount, InvalidAmount
from confidential_nft.backend.models import CONFIDENTIAL_MINT
from confidential_nft.backend.state import build_initial_state


def test_build_initial_state_sets_deployment_defaults() -> None:
    state = build_initial_state(admin="0xOwner")

    assert state.name == "ConfidentialNFT"
    assert state.symbol == "CNFT"
    assert state.admin == "0xOwner"
    assert state.mint_price == 10**16
    assert state.max_supply == 10000
    assert state.next_token_id == 0
    assert state.treasury_balance == 0
    assert state.tokens == {}
    assert state.permissions == {}
    assert state.log == []


def test_build_initial_state_rejects_bad_parameters() -> None:
    with pytest.raises(InvalidAccount):
        build_initial_state(admin="")
    with pytest.raises(InvalidAmount):
        build_initial_state(admin="0xOwner", mint_price=-1)
    with pytest.raises(InvalidAmount):
        build_initial_state(admin="0xOwner", max_supply=-5)


def test_emit_assigns_sequential_positions() -> None:
    state = build_initial_state(admin="0xOwner")

    first = state.emit(CONFIDENTIAL_MINT, {"recipient": "0xA", "token_id": 0})
    second = state.emit(CONFIDENTIAL_MINT, {"recipient": "0xB", "token_id": 1})

    assert [first.sequence, second.sequence] == [0, 1]
    assert state.log == [first, second]
    assert second.to_dict() == {"sequence": 1, "kind": "ConfidentialMint", "data": {"recipient": "0xB", "token_id": 1}}


def test_info_reflects_current_scalars() -> None:
    state = build_initial_state(admin="0xOwner", mint_price=5, max_supply=3)
    state.next_token_id = 2
    state.treasury_balance = 10

    info = state.info()

    assert info.mint_price == 5
    assert info.max_supply == 3
    assert info.next_token_id == 2
    assert info.treasury_balance == 10
