"""Amazon SP-API seller account linking and order retrieval."""

from .auth import ConnectionState, LwaOAuthClient
from .config import RegionConfig
from .errors import (
    AccessDeniedError,
    ApiError,
    AuthenticationError,
    AuthExchangeError,
    CallbackError,
    ConfigurationError,
    CredentialStoreError,
    DisconnectedError,
    NetworkError,
    RateLimitedError,
    RefreshError,
    RetrievalCancelledError,
    SpApiError,
)
from .models import ExternalCredential, OrderRecord, OrderResult, TokenBundle
from .orders import OrdersClient, retrieve_orders
from .token_storage import KeyringCredentialStore

__all__ = [
    "AccessDeniedError",
    "ApiError",
    "AuthExchangeError",
    "AuthenticationError",
    "CallbackError",
    "ConfigurationError",
    "ConnectionState",
    "CredentialStoreError",
    "DisconnectedError",
    "ExternalCredential",
    "KeyringCredentialStore",
    "LwaOAuthClient",
    "NetworkError",
    "OrderRecord",
    "OrderResult",
    "OrdersClient",
    "RateLimitedError",
    "RefreshError",
    "RegionConfig",
    "RetrievalCancelledError",
    "SpApiError",
    "TokenBundle",
    "retrieve_orders",
]
