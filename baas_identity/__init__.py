"""
BaaS Identity

Client-side identity and session library for a backend-as-a-service
object store.

Provides:
- A current-user store mirrored to durable local storage
- Third-party auth providers with credential reconciliation
- Sign-up, log-in (password, session token, SMS), link/unlink and log-out

Usage:

    >>> from baas_identity import IdentityContext, TokenAuthProvider
    >>> async with IdentityContext.from_env() as context:
    ...     context.register_provider(TokenAuthProvider("weixin"))
    ...     user = await context.controller.log_in_with_password("alice", "s3cret")
    ...     await context.controller.link_with(user, "weixin", {"openid": "abc"})
    ...     assert (await context.current_async()) is user
"""

from .config import IdentityConfig

# Exceptions
from .exceptions import (
    AuthenticationRequiredError,
    ConfigurationError,
    IdentityError,
    PreconditionError,
    RequestError,
    StorageIOError,
    TransportConnectionError,
    UnknownProviderError,
    ValidationError,
)

# Identity module
from .identity import (
    AccountService,
    AuthDataReconciler,
    AuthProvider,
    AuthProviderRegistry,
    CurrentUserState,
    CurrentUserStore,
    Identity,
    IdentityContext,
    SessionController,
    TokenAuthProvider,
)

# Storage and transport
from .local import FileKeyValueStorage, KeyValueStorage, MemoryKeyValueStorage
from .transport import HttpTransport, Transport

__all__ = [
    "IdentityConfig",
    # Identity
    "Identity",
    "CurrentUserState",
    "AuthProvider",
    "TokenAuthProvider",
    "AuthProviderRegistry",
    "AuthDataReconciler",
    "CurrentUserStore",
    "SessionController",
    "AccountService",
    "IdentityContext",
    # Storage
    "KeyValueStorage",
    "FileKeyValueStorage",
    "MemoryKeyValueStorage",
    # Transport
    "Transport",
    "HttpTransport",
    # Exceptions
    "IdentityError",
    "ValidationError",
    "PreconditionError",
    "RequestError",
    "TransportConnectionError",
    "StorageIOError",
    "ConfigurationError",
    "AuthenticationRequiredError",
    "UnknownProviderError",
]

__version__ = "0.1.0"
