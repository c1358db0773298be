"""
Session controller.

Drives sign-up, log-in, fetch, save, link, unlink and log-out, and ends
every mutating operation with the shared post-operation pipeline:

    promote -> reconcile auth data -> clean up tombstones
            -> strip password -> persist

Operations that can fail validation are plain methods that raise before
returning their coroutine, so callers see bad input without awaiting.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Mapping
from typing import Any

from ..exceptions import (
    AuthenticationRequiredError,
    PreconditionError,
    UnknownProviderError,
    ValidationError,
)
from ..logging_utils import IdentityLoggerAdapter
from ..transport.base import Transport
from .provider import AuthProvider
from .reconciler import AuthDataReconciler
from .registry import AuthProviderRegistry, auth_type_of
from .store import CurrentUserStore
from .types import Identity, SessionTransaction

logger = logging.getLogger(__name__)

USERS_ROUTE = "users"
LOGIN_ROUTE = "login"
ME_ROUTE = "users/me"
MOBILE_PHONE_ROUTE = "usersByMobilePhone"


def _require(identity: Identity, attrs: Mapping[str, Any] | None, key: str, reason: str) -> None:
    value = (attrs or {}).get(key) or identity.get(key)
    if not value:
        raise ValidationError(key, reason)


class SessionController:
    """Orchestrates the identity lifecycle against the server.

    Example:
        >>> user = await controller.log_in_with_password("alice", "s3cret")
        >>> await controller.link_with(user, "weixin", {"openid": "abc"})
        >>> await controller.log_out()
    """

    def __init__(
        self,
        transport: Transport,
        store: CurrentUserStore,
        reconciler: AuthDataReconciler,
        registry: AuthProviderRegistry,
    ) -> None:
        self.transport = transport
        self.store = store
        self.reconciler = reconciler
        self.registry = registry
        self._post_operation_steps = (
            self._promote,
            self._reconcile,
            self._cleanup_tombstones,
            self._strip_password,
            self._persist,
        )

    @property
    def tracking_enabled(self) -> bool:
        return not self.store.disabled

    # -- current user ---------------------------------------------------------

    def current(self) -> Identity | None:
        return self.store.get_current_sync()

    async def current_async(self) -> Identity | None:
        return await self.store.get_current_async()

    def is_authenticated(self, identity: Identity) -> bool:
        """True if the identity has a session and is the current user."""
        if not identity.session_token or not self.tracking_enabled:
            return False
        current = self.store.get_current_sync()
        return current is not None and current.id == identity.id

    # -- sign up ----------------------------------------------------------------

    def sign_up(
        self, identity: Identity, attrs: Mapping[str, Any] | None = None
    ) -> Awaitable[Identity]:
        """Create the user on the server and make it the current user.

        Raises:
            ValidationError: Immediately, if username or password is empty
        """
        _require(identity, attrs, "username", "Cannot sign up user with an empty name")
        _require(identity, attrs, "password", "Cannot sign up user with an empty password")
        return self._sign_up(identity, attrs)

    async def _sign_up(self, identity: Identity, attrs: Mapping[str, Any] | None) -> Identity:
        await self._save_object(identity, attrs)
        await self._post_operation(identity, promote=True)
        return identity

    def sign_up_with_password(
        self, username: str, password: str, attrs: Mapping[str, Any] | None = None
    ) -> Awaitable[Identity]:
        return self.sign_up(
            Identity(), {**(attrs or {}), "username": username, "password": password}
        )

    def sign_up_or_log_in_by_mobile_phone(
        self, identity: Identity, attrs: Mapping[str, Any] | None = None
    ) -> Awaitable[Identity]:
        """Sign up or log in with a phone number and the SMS code sent to it.

        Raises:
            ValidationError: Immediately, if mobilePhoneNumber or smsCode is empty
        """
        _require(
            identity,
            attrs,
            "mobilePhoneNumber",
            "Cannot sign up or log in by mobile phone with an empty mobilePhoneNumber",
        )
        _require(
            identity,
            attrs,
            "smsCode",
            "Cannot sign up or log in by mobile phone with an empty smsCode",
        )
        return self._sign_up_or_log_in_by_mobile_phone(identity, attrs)

    async def _sign_up_or_log_in_by_mobile_phone(
        self, identity: Identity, attrs: Mapping[str, Any] | None
    ) -> Identity:
        await self._save_object(identity, attrs, route=MOBILE_PHONE_ROUTE)
        # The code is single-use
        identity.sms_code = None
        await self._post_operation(identity, promote=True)
        return identity

    def sign_up_or_log_in_with_mobile_phone(
        self, mobile_phone_number: str, sms_code: str, attrs: Mapping[str, Any] | None = None
    ) -> Awaitable[Identity]:
        return self.sign_up_or_log_in_by_mobile_phone(
            Identity(),
            {**(attrs or {}), "mobilePhoneNumber": mobile_phone_number, "smsCode": sms_code},
        )

    # -- log in -----------------------------------------------------------------

    async def log_in(self, identity: Identity) -> Identity:
        """Log in with whatever credentials are set on the identity.

        Username/password, mobilePhoneNumber/password and
        mobilePhoneNumber/smsCode are all sent through the same route.
        """
        response = await self.transport.request("POST", LOGIN_ROUTE, identity.to_request_body())
        identity.merge_server_data(response)
        # A local smsCode only survives if the server echoed one back
        if not response.get("smsCode"):
            identity.sms_code = None
        await self._post_operation(identity, promote=True)
        return identity

    async def log_in_with_password(self, username: str, password: str) -> Identity:
        identity = Identity(attributes={"username": username}, password=password)
        return await self.log_in(identity)

    async def log_in_with_mobile_phone(self, mobile_phone_number: str, password: str) -> Identity:
        identity = Identity(
            attributes={"mobilePhoneNumber": mobile_phone_number}, password=password
        )
        return await self.log_in(identity)

    async def log_in_with_mobile_phone_sms_code(
        self, mobile_phone_number: str, sms_code: str
    ) -> Identity:
        identity = Identity(
            attributes={"mobilePhoneNumber": mobile_phone_number}, sms_code=sms_code
        )
        return await self.log_in(identity)

    def become(self, session_token: str) -> Awaitable[Identity]:
        """Log in as the owner of an existing session token.

        Raises:
            ValidationError: Immediately, if the token is empty
        """
        if not session_token:
            raise ValidationError(
                "sessionToken", "Cannot become a user with an empty session token"
            )
        return self._become(session_token)

    async def _become(self, session_token: str) -> Identity:
        identity = Identity()
        response = await self.transport.request(
            "GET", ME_ROUTE, params={"session_token": session_token}
        )
        identity.merge_server_data(response)
        if identity.session_token is None:
            identity.session_token = session_token
        await self._post_operation(identity, promote=True)
        return identity

    async def log_in_with_auth_data(
        self, auth_type: str | AuthProvider, payload: Mapping[str, Any]
    ) -> Identity:
        """Sign up or log in with a third-party credential payload."""
        return await self.link_with(Identity(), auth_type, payload)

    # -- fetch / save ---------------------------------------------------------

    def fetch(self, identity: Identity) -> Awaitable[Identity]:
        """Refresh attributes from the server. Never promotes.

        Raises:
            PreconditionError: Immediately, if the identity has no id
        """
        if not identity.id:
            raise PreconditionError("fetch", "identity has not been saved")
        return self._fetch(identity)

    async def _fetch(self, identity: Identity) -> Identity:
        response = await self.transport.request(
            "GET", f"{USERS_ROUTE}/{identity.id}", session_token=identity.session_token
        )
        identity.merge_server_data(response)
        await self._post_operation(identity, promote=False)
        return identity

    async def save(self, identity: Identity, attrs: Mapping[str, Any] | None = None) -> Identity:
        """Save attributes. Never promotes; persists if already current."""
        await self._save_object(identity, attrs)
        await self._post_operation(identity, promote=False)
        return identity

    # -- third-party providers --------------------------------------------------

    async def link_with(
        self,
        identity: Identity,
        provider: str | AuthProvider,
        payload: Mapping[str, Any] | None = None,
    ) -> Identity:
        """Link a provider credential to the identity and make it current.

        Linking always promotes, even an identity that was never logged in:
        only the current user's providers are kept synchronized.
        Without a payload the provider's interactive flow supplies one.
        """
        if payload is None:
            resolved = self.registry.resolve(provider)
            if resolved is None:
                raise UnknownProviderError(auth_type_of(provider))
            payload = await resolved.authenticate()
            if payload is None:
                raise AuthenticationRequiredError(
                    resolved.auth_type, "Provider returned no credentials"
                )
            return await self.link_with(identity, resolved, payload)

        return await self._save_auth_data(identity, auth_type_of(provider), payload)

    async def associate_with_auth_data(
        self, identity: Identity, auth_type: str | AuthProvider, payload: Mapping[str, Any]
    ) -> Identity:
        return await self.link_with(identity, auth_type, payload)

    async def unlink_from(self, identity: Identity, provider: str | AuthProvider) -> Identity:
        """Remove a provider link and tear down its SDK state."""
        resolved = self.registry.resolve(provider)
        await self._save_auth_data(identity, auth_type_of(provider), None)
        if resolved is not None:
            await self.reconciler.reconcile_one(identity, resolved)
            self.reconciler.deauthenticate_one(identity, resolved)
        return identity

    def is_linked(self, identity: Identity, provider: str | AuthProvider) -> bool:
        return identity.is_linked(auth_type_of(provider))

    async def _save_auth_data(
        self, identity: Identity, auth_type: str, payload: Mapping[str, Any] | None
    ) -> Identity:
        identity.set_auth_data(auth_type, payload)
        await self._save_object(identity, None)
        await self._post_operation(identity, promote=True)
        return identity

    # -- log out ----------------------------------------------------------------

    async def log_out(self) -> None:
        """Log out the current user: providers, flag, durable record."""
        await self.store.clear()

    # -- internals ------------------------------------------------------------

    async def _save_object(
        self, identity: Identity, attrs: Mapping[str, Any] | None, route: str | None = None
    ) -> None:
        identity.update(attrs)
        if route is not None:
            method, path = "POST", route
        elif identity.id:
            method, path = "PUT", f"{USERS_ROUTE}/{identity.id}"
        else:
            method, path = "POST", USERS_ROUTE

        response = await self.transport.request(
            method, path, identity.to_request_body(), session_token=identity.session_token
        )
        identity.merge_server_data(response)

    async def _post_operation(self, identity: Identity, promote: bool) -> SessionTransaction:
        transaction = SessionTransaction(identity=identity, promote=promote)
        for step in self._post_operation_steps:
            await step(transaction)

        IdentityLoggerAdapter(logger, {"identity_id": identity.id}).debug(
            f"Post-operation complete (promote={promote}, persisted={transaction.persisted})"
        )
        return transaction

    async def _promote(self, transaction: SessionTransaction) -> None:
        if not transaction.promote or not self.tracking_enabled:
            return
        # The outgoing user is fully logged out before this one is flagged
        await self.store.demote_others(transaction.identity)
        transaction.identity.is_current = True

    async def _reconcile(self, transaction: SessionTransaction) -> None:
        await self.reconciler.reconcile_all(transaction.identity)

    async def _cleanup_tombstones(self, transaction: SessionTransaction) -> None:
        self.reconciler.cleanup_tombstones(transaction.identity)

    async def _strip_password(self, transaction: SessionTransaction) -> None:
        transaction.identity.password = None

    async def _persist(self, transaction: SessionTransaction) -> None:
        if transaction.identity.is_current and self.tracking_enabled:
            await self.store.set_current(transaction.identity)
            transaction.persisted = True
