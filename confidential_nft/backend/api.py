"""FastAPI endpoints for minting, permissions, transfers, treasury and event sync."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Any

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from .config import load_settings
from .engine import OperationResult, build_mint_requests
from .errors import AuthorizationError, NotFoundError, RegistryError, ValidationError
from .models import EncryptedAttributes, RegistryEvent
from .store import RegistryStore, create_store

logger = logging.getLogger(__name__)


def _hex_to_bytes(value: Any) -> Any:
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        return bytes.fromhex(text)
    return value


class MintRequestBody(BaseModel):
    recipient: str = Field(min_length=1)
    uri: str
    enc_rarity: bytes
    enc_power: bytes
    enc_level: bytes
    enc_value: bytes
    payment: int = Field(ge=0)

    @field_validator("enc_rarity", "enc_power", "enc_level", "enc_value", mode="before")
    @classmethod
    def decode_ciphertext(cls, value: Any) -> Any:
        return _hex_to_bytes(value)


class BatchMintRequestBody(BaseModel):
    recipients: list[str]
    uris: list[str]
    enc_rarity: list[bytes]
    enc_power: list[bytes]
    enc_level: list[bytes]
    enc_value: list[bytes]
    payment: int = Field(ge=0)

    @field_validator("enc_rarity", "enc_power", "enc_level", "enc_value", mode="before")
    @classmethod
    def decode_ciphertexts(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_hex_to_bytes(item) for item in value]
        return value


class PermissionEnvelope(BaseModel):
    requester: str = Field(min_length=1)
    viewer: str = Field(min_length=1)


class TransferEnvelope(BaseModel):
    requester: str = Field(min_length=1)
    from_account: str = Field(min_length=1)
    to_account: str = Field(min_length=1)


class MintPriceEnvelope(BaseModel):
    requester: str = Field(min_length=1)
    mint_price: int = Field(ge=0)


class AdminEnvelope(BaseModel):
    requester: str = Field(min_length=1)


class RegistryInfoResponse(BaseModel):
    name: str
    symbol: str
    admin: str
    mint_price: int
    max_supply: int
    next_token_id: int
    treasury_balance: int


class MintResponse(BaseModel):
    token_id: int
    events: list[dict[str, Any]]


class BatchMintResponse(BaseModel):
    token_ids: list[int]
    events: list[dict[str, Any]]


class TokenResponse(BaseModel):
    token_id: int
    owner: str
    uri: str


class AttributesResponse(BaseModel):
    token_id: int
    rarity: str
    power: str
    level: str
    value: str


class PermissionResponse(BaseModel):
    token_id: int
    viewer: str
    granted: bool


class TransferResponse(BaseModel):
    token_id: int
    owner: str
    events: list[dict[str, Any]]


class AccountTokensResponse(BaseModel):
    account: str
    balance: int
    token_ids: list[int]


class MintPriceResponse(BaseModel):
    mint_price: int


class WithdrawResponse(BaseModel):
    recipient: str
    amount: int


class EventsResponse(BaseModel):
    events: list[dict[str, Any]]


class RegistryEventHub:
    """Fans registry events out to websockets.

    Each socket remembers the next sequence it expects, so an event already
    delivered in its backlog is not sent again by a broadcast.
    """

    def __init__(self) -> None:
        self._connections: dict[WebSocket, int] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, backlog: Callable[[], list[RegistryEvent]], since: int) -> None:
        await websocket.accept()
        async with self._lock:
            events = backlog()
            await websocket.send_json({"type": "events", "events": [event.to_dict() for event in events]})
            self._connections[websocket] = events[-1].sequence + 1 if events else since

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.pop(websocket, None)

    async def broadcast_events(self, events: list[RegistryEvent]) -> None:
        async with self._lock:
            stale_connections: list[WebSocket] = []
            for websocket, next_sequence in list(self._connections.items()):
                pending = [event for event in events if event.sequence >= next_sequence]
                try:
                    for event in pending:
                        await websocket.send_json({"type": "event", "event": event.to_dict()})
                except RuntimeError:
                    stale_connections.append(websocket)
                    continue
                if pending and websocket in self._connections:
                    self._connections[websocket] = pending[-1].sequence + 1
            for websocket in stale_connections:
                self.disconnect(websocket)


def _error_status(exc: RegistryError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    return 500


def _default_store() -> RegistryStore:
    return create_store(load_settings())


def _event_dicts(result: OperationResult) -> list[dict[str, Any]]:
    return [event.to_dict() for event in result.events]


def create_app(store: RegistryStore | None = None) -> FastAPI:
    app = FastAPI(title="Confidential NFT Registry API", version="0.1.0")
    registry_store = store if store is not None else _default_store()
    event_hub = RegistryEventHub()
    app.state.event_hub = event_hub

    async def publish_events(events: list[RegistryEvent]) -> None:
        if events:
            await event_hub.broadcast_events(events)

    app.state.publish_events = publish_events

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
        logger.info("Rejected %s %s: %s (%s)", request.method, request.url.path, exc.kind, exc)
        return JSONResponse(status_code=_error_status(exc), content={"error": exc.kind, "detail": str(exc)})

    def get_store() -> RegistryStore:
        return registry_store

    @app.get("/api/registry", response_model=RegistryInfoResponse)
    def get_registry(local_store: RegistryStore = Depends(get_store)) -> RegistryInfoResponse:
        info = local_store.get_info()
        return RegistryInfoResponse(
            name=info.name,
            symbol=info.symbol,
            admin=info.admin,
            mint_price=info.mint_price,
            max_supply=info.max_supply,
            next_token_id=info.next_token_id,
            treasury_balance=info.treasury_balance,
        )

    @app.post("/api/tokens", response_model=MintResponse)
    async def confidential_mint(
        payload: MintRequestBody,
        local_store: RegistryStore = Depends(get_store),
    ) -> MintResponse:
        result = local_store.confidential_mint(
            recipient=payload.recipient,
            uri=payload.uri,
            attributes=EncryptedAttributes(
                rarity=payload.enc_rarity,
                power=payload.enc_power,
                level=payload.enc_level,
                value=payload.enc_value,
            ),
            payment=payload.payment,
        )
        await publish_events(result.events)
        return MintResponse(token_id=result.value, events=_event_dicts(result))

    @app.post("/api/tokens/batch", response_model=BatchMintResponse)
    async def batch_confidential_mint(
        payload: BatchMintRequestBody,
        local_store: RegistryStore = Depends(get_store),
    ) -> BatchMintResponse:
        requests = build_mint_requests(
            recipients=payload.recipients,
            uris=payload.uris,
            enc_rarity=payload.enc_rarity,
            enc_power=payload.enc_power,
            enc_level=payload.enc_level,
            enc_value=payload.enc_value,
        )
        result = local_store.batch_confidential_mint(requests=requests, payment=payload.payment)
        await publish_events(result.events)
        return BatchMintResponse(token_ids=result.value, events=_event_dicts(result))

    @app.get("/api/tokens/{token_id}", response_model=TokenResponse)
    def get_token(token_id: int, local_store: RegistryStore = Depends(get_store)) -> TokenResponse:
        record = local_store.get_token(token_id)
        return TokenResponse(token_id=record.token_id, owner=record.owner, uri=record.uri)

    @app.get("/api/tokens/{token_id}/attributes", response_model=AttributesResponse)
    def get_attributes(
        token_id: int,
        viewer: str = Query(min_length=1),
        local_store: RegistryStore = Depends(get_store),
    ) -> AttributesResponse:
        attributes = local_store.get_attributes(token_id=token_id, viewer=viewer)
        return AttributesResponse(token_id=token_id, **attributes.as_hex())

    @app.get("/api/tokens/{token_id}/permissions/{viewer}", response_model=PermissionResponse)
    def has_view_permission(
        token_id: int,
        viewer: str,
        local_store: RegistryStore = Depends(get_store),
    ) -> PermissionResponse:
        granted = local_store.has_view_permission(token_id=token_id, viewer=viewer)
        return PermissionResponse(token_id=token_id, viewer=viewer, granted=granted)

    @app.post("/api/tokens/{token_id}/permissions/grant", response_model=PermissionResponse)
    async def grant_view_permission(
        token_id: int,
        payload: PermissionEnvelope,
        local_store: RegistryStore = Depends(get_store),
    ) -> PermissionResponse:
        result = local_store.grant_view_permission(token_id=token_id, viewer=payload.viewer, requester=payload.requester)
        await publish_events(result.events)
        return PermissionResponse(token_id=token_id, viewer=payload.viewer, granted=True)

    @app.post("/api/tokens/{token_id}/permissions/revoke", response_model=PermissionResponse)
    async def revoke_view_permission(
        token_id: int,
        payload: PermissionEnvelope,
        local_store: RegistryStore = Depends(get_store),
    ) -> PermissionResponse:
        result = local_store.revoke_view_permission(
            token_id=token_id, viewer=payload.viewer, requester=payload.requester
        )
        await publish_events(result.events)
        return PermissionResponse(token_id=token_id, viewer=payload.viewer, granted=False)

    @app.post("/api/tokens/{token_id}/transfer", response_model=TransferResponse)
    async def transfer_from(
        token_id: int,
        payload: TransferEnvelope,
        local_store: RegistryStore = Depends(get_store),
    ) -> TransferResponse:
        result = local_store.transfer_from(
            from_account=payload.from_account,
            to_account=payload.to_account,
            token_id=token_id,
            requester=payload.requester,
        )
        await publish_events(result.events)
        return TransferResponse(token_id=token_id, owner=payload.to_account, events=_event_dicts(result))

    @app.get("/api/accounts/{account}/tokens", response_model=AccountTokensResponse)
    def get_account_tokens(account: str, local_store: RegistryStore = Depends(get_store)) -> AccountTokensResponse:
        token_ids = local_store.tokens_of_owner(account)
        return AccountTokensResponse(account=account, balance=len(token_ids), token_ids=token_ids)

    @app.post("/api/admin/mint-price", response_model=MintPriceResponse)
    def set_mint_price(
        payload: MintPriceEnvelope,
        local_store: RegistryStore = Depends(get_store),
    ) -> MintPriceResponse:
        result = local_store.set_mint_price(new_price=payload.mint_price, requester=payload.requester)
        return MintPriceResponse(mint_price=result.value)

    @app.post("/api/admin/withdraw", response_model=WithdrawResponse)
    def withdraw(
        payload: AdminEnvelope,
        local_store: RegistryStore = Depends(get_store),
    ) -> WithdrawResponse:
        withdrawal = local_store.withdraw(requester=payload.requester).value
        return WithdrawResponse(recipient=withdrawal.recipient, amount=withdrawal.amount)

    @app.get("/api/events", response_model=EventsResponse)
    def list_events(
        since: int = Query(default=0, ge=0),
        local_store: RegistryStore = Depends(get_store),
    ) -> EventsResponse:
        return EventsResponse(events=[event.to_dict() for event in local_store.events_since(since)])

    @app.websocket("/ws/events")
    async def events_ws(
        websocket: WebSocket,
        local_store: RegistryStore = Depends(get_store),
    ) -> None:
        since_raw = websocket.query_params.get("since", "0")
        if not since_raw.isdigit():
            await websocket.close(code=1008)
            return

        since = int(since_raw)
        await event_hub.connect(websocket, lambda: local_store.events_since(since), since)

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            event_hub.disconnect(websocket)

    return app


app = create_app()
