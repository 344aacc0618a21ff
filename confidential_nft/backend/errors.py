"""Error taxonomy for registry operations.

Every rejected call raises one of these before touching registry state.
``kind`` is the stable name reported to API clients.
"""

from __future__ import annotations


class RegistryError(Exception):
    kind = "RegistryError"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind)


class ValidationError(RegistryError):
    """Caller input was rejected; correct it and resubmit."""

    kind = "ValidationError"


class InsufficientPayment(ValidationError):
    kind = "InsufficientPayment"


class SupplyExceeded(ValidationError):
    kind = "SupplyExceeded"


class BatchTooLarge(ValidationError):
    kind = "BatchTooLarge"


class EmptyBatch(ValidationError):
    kind = "EmptyBatch"


class ArrayLengthMismatch(ValidationError):
    kind = "ArrayLengthMismatch"


class InvalidAmount(ValidationError):
    kind = "InvalidAmount"


class InvalidAccount(ValidationError):
    kind = "InvalidAccount"


class NothingToWithdraw(ValidationError):
    kind = "NothingToWithdraw"


class AuthorizationError(RegistryError):
    """Caller lacks the rights for this call."""

    kind = "AuthorizationError"


class NotOwner(AuthorizationError):
    kind = "NotOwner"


class NotAdmin(AuthorizationError):
    kind = "NotAdmin"


class NotAuthorizedViewer(AuthorizationError):
    kind = "NotAuthorizedViewer"


class NotFoundError(RegistryError):
    kind = "NotFound"


class TokenNotFound(NotFoundError):
    def __init__(self, token_id: int) -> None:
        super().__init__(f"Token {token_id} does not exist")
        self.token_id = token_id
