"""Backend package for the confidential NFT registry."""

from .config import RegistrySettings, load_settings
from .errors import AuthorizationError, NotFoundError, RegistryError, ValidationError
from .models import EncryptedAttributes, MintRequest, RegistryEvent, TokenRecord
from .state import RegistryState, build_initial_state
from .store import InMemoryRegistryStore, PostgresRegistryStore, RegistryStore, create_store

__all__ = [
    "AuthorizationError",
    "build_initial_state",
    "create_store",
    "EncryptedAttributes",
    "InMemoryRegistryStore",
    "load_settings",
    "MintRequest",
    "NotFoundError",
    "PostgresRegistryStore",
    "RegistryError",
    "RegistryEvent",
    "RegistrySettings",
    "RegistryState",
    "RegistryStore",
    "TokenRecord",
    "ValidationError",
]
