"""Persistence interfaces and implementations for registry data."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import threading
from typing import Any, Protocol, TypeVar

from confidential_nft.backend import engine, permissions, tokens
from confidential_nft.backend.config import RegistrySettings
from confidential_nft.backend.engine import OperationResult
from confidential_nft.backend.models import EncryptedAttributes, MintRequest, RegistryEvent, RegistryInfo, TokenRecord
from confidential_nft.backend.state import RegistryState, build_initial_state

T = TypeVar("T")


class RegistryStore(Protocol):
    def get_info(self) -> RegistryInfo:
        """Return registry scalars: pricing, supply counter and treasury."""

    def confidential_mint(
        self, recipient: str, uri: str, attributes: EncryptedAttributes, payment: int
    ) -> OperationResult:
        """Mint one token; value is the new token id."""

    def batch_confidential_mint(self, requests: list[MintRequest], payment: int) -> OperationResult:
        """Mint all requests or none; value is the list of new token ids."""

    def get_token(self, token_id: int) -> TokenRecord:
        """Return the token record or raise TokenNotFound."""

    def get_attributes(self, token_id: int, viewer: str) -> EncryptedAttributes:
        """Return ciphertexts when viewer is authorized."""

    def tokens_of_owner(self, owner: str) -> list[int]:
        """Return ids owned by an account in ascending order."""

    def grant_view_permission(self, token_id: int, viewer: str, requester: str) -> OperationResult:
        """Grant view permission when requester owns the token."""

    def revoke_view_permission(self, token_id: int, viewer: str, requester: str) -> OperationResult:
        """Revoke view permission when requester owns the token."""

    def has_view_permission(self, token_id: int, viewer: str) -> bool:
        """Return whether viewer owns or was granted the token."""

    def transfer_from(self, from_account: str, to_account: str, token_id: int, requester: str) -> OperationResult:
        """Transfer ownership and grant the new owner view permission."""

    def set_mint_price(self, new_price: int, requester: str) -> OperationResult:
        """Update the mint price when requester is the admin."""

    def withdraw(self, requester: str) -> OperationResult:
        """Pay out the whole treasury to the admin."""

    def events_since(self, sequence: int) -> list[RegistryEvent]:
        """Return logged events with sequence >= the given one."""


@dataclass
class InMemoryRegistryStore:
    state: RegistryState

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def get_info(self) -> RegistryInfo:
        with self._lock:
            return self.state.info()

    def confidential_mint(
        self, recipient: str, uri: str, attributes: EncryptedAttributes, payment: int
    ) -> OperationResult:
        with self._lock:
            return engine.mint_single(self.state, recipient=recipient, uri=uri, attributes=attributes, payment=payment)

    def batch_confidential_mint(self, requests: list[MintRequest], payment: int) -> OperationResult:
        with self._lock:
            return engine.mint_batch(self.state, requests=requests, payment=payment)

    def get_token(self, token_id: int) -> TokenRecord:
        with self._lock:
            return tokens.get_token(self.state, token_id)

    def get_attributes(self, token_id: int, viewer: str) -> EncryptedAttributes:
        with self._lock:
            return engine.get_attributes(self.state, token_id=token_id, viewer=viewer)

    def tokens_of_owner(self, owner: str) -> list[int]:
        with self._lock:
            return tokens.tokens_of_owner(self.state, owner)

    def grant_view_permission(self, token_id: int, viewer: str, requester: str) -> OperationResult:
        with self._lock:
            event = permissions.grant_view_permission(self.state, token_id, viewer=viewer, requester=requester)
        return OperationResult(value=True, events=[event])

    def revoke_view_permission(self, token_id: int, viewer: str, requester: str) -> OperationResult:
        with self._lock:
            event = permissions.revoke_view_permission(self.state, token_id, viewer=viewer, requester=requester)
        return OperationResult(value=False, events=[event])

    def has_view_permission(self, token_id: int, viewer: str) -> bool:
        with self._lock:
            return permissions.has_view_permission(self.state, token_id, viewer)

    def transfer_from(self, from_account: str, to_account: str, token_id: int, requester: str) -> OperationResult:
        with self._lock:
            return engine.transfer(
                self.state,
                token_id=token_id,
                from_account=from_account,
                to_account=to_account,
                requester=requester,
            )

    def set_mint_price(self, new_price: int, requester: str) -> OperationResult:
        with self._lock:
            return engine.set_mint_price(self.state, new_price=new_price, requester=requester)

    def withdraw(self, requester: str) -> OperationResult:
        with self._lock:
            return engine.withdraw(self.state, requester=requester)

    def events_since(self, sequence: int) -> list[RegistryEvent]:
        with self._lock:
            return list(self.state.log[max(sequence, 0) :])


@dataclass
class PostgresRegistryStore:
    """Loads the rows an operation touches into a ``RegistryState`` and writes back what changed.

    Mutations lock the single ``registry`` row first, so the loaded slice cannot
    go stale before the write-back commits.
    """

    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def _load_state(self, cur: Any, token_id: int | None = None, lock: bool = True) -> RegistryState:
        cur.execute(
            """
            SELECT name, symbol, admin, mint_price, max_supply, next_token_id, treasury_balance, next_event_sequence
            FROM registry
            WHERE id = 1
            """
            + ("FOR UPDATE" if lock else ""),
            (),
        )
        row = cur.fetchone()
        if row is None:
            raise RuntimeError("Registry row is missing; run confidential_nft.backend.migrate first")
        state = RegistryState(
            name=row[0],
            symbol=row[1],
            admin=row[2],
            mint_price=int(row[3]),
            max_supply=int(row[4]),
            next_token_id=int(row[5]),
            treasury_balance=int(row[6]),
            event_offset=int(row[7]),
        )
        if token_id is None:
            return state

        cur.execute(
            """
            SELECT token_id, owner, uri, enc_rarity, enc_power, enc_level, enc_value
            FROM tokens
            WHERE token_id = %s
            """,
            (token_id,),
        )
        token_row = cur.fetchone()
        if token_row is None:
            return state
        record = _token_from_row(token_row)
        state.tokens[record.token_id] = record
        cur.execute("SELECT viewer, granted FROM token_permissions WHERE token_id = %s", (record.token_id,))
        for viewer, granted in cur.fetchall():
            state.permissions[(record.token_id, viewer)] = bool(granted)
        return state

    def _persist(
        self,
        cur: Any,
        state: RegistryState,
        tokens_before: dict[int, TokenRecord],
        permissions_before: dict[tuple[int, str], bool],
        now: datetime,
    ) -> None:
        for token_id, record in sorted(state.tokens.items()):
            previous = tokens_before.get(token_id)
            if previous is None:
                attributes = record.attributes
                cur.execute(
                    """
                    INSERT INTO tokens (token_id, owner, uri, enc_rarity, enc_power, enc_level, enc_value, minted_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        token_id,
                        record.owner,
                        record.uri,
                        attributes.rarity,
                        attributes.power,
                        attributes.level,
                        attributes.value,
                        now,
                    ),
                )
            elif previous.owner != record.owner:
                cur.execute("UPDATE tokens SET owner = %s WHERE token_id = %s", (record.owner, token_id))

        for key, granted in sorted(state.permissions.items()):
            if permissions_before.get(key) == granted:
                continue
            cur.execute(
                """
                INSERT INTO token_permissions (token_id, viewer, granted, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (token_id, viewer) DO UPDATE SET granted = EXCLUDED.granted, updated_at = EXCLUDED.updated_at
                """,
                (key[0], key[1], granted, now),
            )

        for event in state.log:
            cur.execute(
                """
                INSERT INTO registry_events (sequence, kind, data, created_at)
                VALUES (%s, %s, %s::jsonb, %s)
                """,
                (event.sequence, event.kind, json.dumps(event.data), now),
            )

        cur.execute(
            """
            UPDATE registry
            SET mint_price = %s, next_token_id = %s, treasury_balance = %s, next_event_sequence = %s, updated_at = %s
            WHERE id = 1
            """,
            (
                state.mint_price,
                state.next_token_id,
                state.treasury_balance,
                state.event_offset + len(state.log),
                now,
            ),
        )

    def _apply(self, operation: Callable[[RegistryState], T], token_id: int | None = None) -> T:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                state = self._load_state(cur, token_id=token_id)
                tokens_before = dict(state.tokens)
                permissions_before = dict(state.permissions)
                result = operation(state)
                self._persist(cur, state, tokens_before, permissions_before, now)
            conn.commit()
        return result

    def _read(self, operation: Callable[[RegistryState], T], token_id: int | None = None) -> T:
        with self._connect() as conn:
            with conn.cursor() as cur:
                state = self._load_state(cur, token_id=token_id, lock=False)
        return operation(state)

    def get_info(self) -> RegistryInfo:
        return self._read(RegistryState.info)

    def confidential_mint(
        self, recipient: str, uri: str, attributes: EncryptedAttributes, payment: int
    ) -> OperationResult:
        return self._apply(
            lambda state: engine.mint_single(state, recipient=recipient, uri=uri, attributes=attributes, payment=payment)
        )

    def batch_confidential_mint(self, requests: list[MintRequest], payment: int) -> OperationResult:
        return self._apply(lambda state: engine.mint_batch(state, requests=requests, payment=payment))

    def get_token(self, token_id: int) -> TokenRecord:
        return self._read(lambda state: tokens.get_token(state, token_id), token_id=token_id)

    def get_attributes(self, token_id: int, viewer: str) -> EncryptedAttributes:
        return self._read(
            lambda state: engine.get_attributes(state, token_id=token_id, viewer=viewer), token_id=token_id
        )

    def tokens_of_owner(self, owner: str) -> list[int]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT token_id FROM tokens WHERE owner = %s ORDER BY token_id", (owner,))
                rows = cur.fetchall()
        return [int(row[0]) for row in rows]

    def grant_view_permission(self, token_id: int, viewer: str, requester: str) -> OperationResult:
        event = self._apply(
            lambda state: permissions.grant_view_permission(state, token_id, viewer=viewer, requester=requester),
            token_id=token_id,
        )
        return OperationResult(value=True, events=[event])

    def revoke_view_permission(self, token_id: int, viewer: str, requester: str) -> OperationResult:
        event = self._apply(
            lambda state: permissions.revoke_view_permission(state, token_id, viewer=viewer, requester=requester),
            token_id=token_id,
        )
        return OperationResult(value=False, events=[event])

    def has_view_permission(self, token_id: int, viewer: str) -> bool:
        return self._read(lambda state: permissions.has_view_permission(state, token_id, viewer), token_id=token_id)

    def transfer_from(self, from_account: str, to_account: str, token_id: int, requester: str) -> OperationResult:
        return self._apply(
            lambda state: engine.transfer(
                state,
                token_id=token_id,
                from_account=from_account,
                to_account=to_account,
                requester=requester,
            ),
            token_id=token_id,
        )

    def set_mint_price(self, new_price: int, requester: str) -> OperationResult:
        return self._apply(lambda state: engine.set_mint_price(state, new_price=new_price, requester=requester))

    def withdraw(self, requester: str) -> OperationResult:
        return self._apply(lambda state: engine.withdraw(state, requester=requester))

    def events_since(self, sequence: int) -> list[RegistryEvent]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT sequence, kind, data FROM registry_events WHERE sequence >= %s ORDER BY sequence",
                    (max(sequence, 0),),
                )
                rows = cur.fetchall()
        events = []
        for event_sequence, kind, data in rows:
            payload = data if isinstance(data, dict) else json.loads(data)
            events.append(RegistryEvent(sequence=int(event_sequence), kind=kind, data=payload))
        return events



def _token_from_row(row: tuple) -> TokenRecord:
    token_id, owner, uri, rarity, power, level, value = row
    return TokenRecord(
        token_id=int(token_id),
        owner=owner,
        uri=uri,
        attributes=EncryptedAttributes(
            rarity=bytes(rarity),
            power=bytes(power),
            level=bytes(level),
            value=bytes(value),
        ),
    )


def create_store(settings: RegistrySettings) -> RegistryStore:
    if settings.database_url:
        return PostgresRegistryStore(database_url=settings.database_url)
    state = build_initial_state(
        admin=settings.admin,
        name=settings.name,
        symbol=settings.symbol,
        mint_price=settings.mint_price,
        max_supply=settings.max_supply,
    )
    return InMemoryRegistryStore(state=state)
