"""
Identity and session management.

Provides the current-user store, the auth provider registry and
reconciler, and the session controller that ties them together.
"""

from .account import AccountService
from .context import IdentityContext
from .controller import SessionController
from .provider import AuthProvider, TokenAuthProvider
from .reconciler import AuthDataReconciler
from .registry import AuthProviderRegistry
from .store import CurrentUserStore
from .types import CurrentUserState, Identity, SessionTransaction

__all__ = [
    # Types
    "Identity",
    "CurrentUserState",
    "SessionTransaction",
    # Providers
    "AuthProvider",
    "TokenAuthProvider",
    "AuthProviderRegistry",
    "AuthDataReconciler",
    # Session state
    "CurrentUserStore",
    "SessionController",
    "AccountService",
    # Context
    "IdentityContext",
]
