"""
Account maintenance requests.

Friendship, password and verification routes that act on a user
without touching the current-user session state.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any

from ..exceptions import PreconditionError, ValidationError
from ..transport.base import Transport
from .types import Identity


class AccountService:
    """Thin wrappers over the account routes of the API."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    # -- friendship -------------------------------------------------------------

    def follow(self, identity: Identity, target: Identity | str) -> Awaitable[dict[str, Any]]:
        """Follow another user.

        Raises:
            PreconditionError: Immediately, if the identity is not signed in
                or the target has no id
        """
        target_id = _friendship_target("follow", identity, target)
        return self.transport.request(
            "POST",
            f"users/{identity.id}/friendship/{target_id}",
            session_token=identity.session_token,
        )

    def unfollow(self, identity: Identity, target: Identity | str) -> Awaitable[dict[str, Any]]:
        """Stop following another user."""
        target_id = _friendship_target("unfollow", identity, target)
        return self.transport.request(
            "DELETE",
            f"users/{identity.id}/friendship/{target_id}",
            session_token=identity.session_token,
        )

    # -- passwords --------------------------------------------------------------

    def update_password(
        self, identity: Identity, old_password: str, new_password: str
    ) -> Awaitable[dict[str, Any]]:
        """Change the password, proving knowledge of the old one."""
        if not identity.id:
            raise PreconditionError("update password", "identity has not been saved")
        return self.transport.request(
            "PUT",
            f"users/{identity.id}/updatePassword",
            {"old_password": old_password, "new_password": new_password},
            session_token=identity.session_token,
        )

    async def request_password_reset(self, email: str) -> dict[str, Any]:
        return await self.transport.request("POST", "requestPasswordReset", {"email": email})

    async def request_password_reset_by_sms_code(self, mobile_phone_number: str) -> dict[str, Any]:
        return await self.transport.request(
            "POST", "requestPasswordResetBySmsCode", {"mobilePhoneNumber": mobile_phone_number}
        )

    def reset_password_by_sms_code(self, code: str, password: str) -> Awaitable[dict[str, Any]]:
        if not code:
            raise ValidationError("smsCode", "Cannot reset password with an empty smsCode")
        return self.transport.request(
            "PUT", f"resetPasswordBySmsCode/{code}", {"password": password}
        )

    # -- verification -----------------------------------------------------------

    async def request_email_verify(self, email: str) -> dict[str, Any]:
        return await self.transport.request("POST", "requestEmailVerify", {"email": email})

    async def request_mobile_phone_verify(self, mobile_phone_number: str) -> dict[str, Any]:
        return await self.transport.request(
            "POST", "requestMobilePhoneVerify", {"mobilePhoneNumber": mobile_phone_number}
        )

    def verify_mobile_phone(self, code: str) -> Awaitable[dict[str, Any]]:
        if not code:
            raise ValidationError("smsCode", "Cannot verify mobile phone with an empty smsCode")
        return self.transport.request("POST", f"verifyMobilePhone/{code}")

    async def request_login_sms_code(self, mobile_phone_number: str) -> dict[str, Any]:
        return await self.transport.request(
            "POST", "requestLoginSmsCode", {"mobilePhoneNumber": mobile_phone_number}
        )


def _friendship_target(operation: str, identity: Identity, target: Identity | str | None) -> str:
    if not identity.id:
        raise PreconditionError(operation, "please sign in")
    if not target:
        raise PreconditionError(operation, "invalid target user")
    target_id = target if isinstance(target, str) else target.id
    if not target_id:
        raise PreconditionError(operation, "invalid target user")
    return target_id
