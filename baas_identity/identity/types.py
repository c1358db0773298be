"""
Identity types and data classes.

Defines the user entity, the current-user cache states and the
transaction value threaded through the post-operation pipeline.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Wire keys that map onto typed Identity fields instead of `attributes`.
OBJECT_ID_KEY = "objectId"
SESSION_TOKEN_KEY = "sessionToken"
AUTH_DATA_KEY = "authData"
PASSWORD_KEY = "password"
SMS_CODE_KEY = "smsCode"

RECORD_ID_KEY = "_id"
RECORD_SESSION_TOKEN_KEY = "_sessionToken"


class CurrentUserState(Enum):
    """Cache state of the current-user store.

    UNRESOLVED is the only state in which a durable read is still owed.
    """

    UNRESOLVED = "unresolved"
    EMPTY = "empty"
    HOLDING = "holding"


@dataclass(eq=False)
class Identity:
    """A user of the object store.

    Reserved wire keys live in typed fields; every other attribute is kept
    in the open ``attributes`` mapping. Instances compare by identity, since
    the current-user store tracks one specific instance.
    """

    id: str | None = None
    session_token: str | None = field(default=None, repr=False)
    attributes: dict[str, Any] = field(default_factory=dict)
    # Provider id -> credential payload; a None payload is a pending-unlink tombstone.
    auth_data: dict[str, Any] | None = None
    password: str | None = field(default=None, repr=False)
    sms_code: str | None = field(default=None, repr=False)
    is_current: bool = False

    # -- attribute access -------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Get an attribute by its wire name."""
        if key == PASSWORD_KEY:
            return self.password if self.password is not None else default
        if key == SMS_CODE_KEY:
            return self.sms_code if self.sms_code is not None else default
        if key == AUTH_DATA_KEY:
            return self.auth_data if self.auth_data is not None else default
        if key == OBJECT_ID_KEY:
            return self.id if self.id is not None else default
        return self.attributes.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set an attribute by its wire name."""
        if key == PASSWORD_KEY:
            self.password = value
        elif key == SMS_CODE_KEY:
            self.sms_code = value
        elif key == AUTH_DATA_KEY:
            self.auth_data = dict(value) if value is not None else None
        elif key == OBJECT_ID_KEY:
            self.id = value
        elif key == SESSION_TOKEN_KEY:
            self.session_token = value
        else:
            self.attributes[key] = value

    def update(self, attrs: Mapping[str, Any] | None) -> None:
        """Set several attributes at once."""
        for key, value in (attrs or {}).items():
            self.set(key, value)

    @property
    def username(self) -> str | None:
        return self.attributes.get("username")

    @username.setter
    def username(self, value: str | None) -> None:
        self.attributes["username"] = value

    @property
    def email(self) -> str | None:
        return self.attributes.get("email")

    @email.setter
    def email(self, value: str | None) -> None:
        self.attributes["email"] = value

    @property
    def mobile_phone_number(self) -> str | None:
        return self.attributes.get("mobilePhoneNumber")

    @mobile_phone_number.setter
    def mobile_phone_number(self, value: str | None) -> None:
        self.attributes["mobilePhoneNumber"] = value

    # -- auth data --------------------------------------------------------

    def set_auth_data(self, auth_type: str, payload: Mapping[str, Any] | None) -> None:
        """Attach a provider payload, or a tombstone when payload is None."""
        if self.auth_data is None:
            self.auth_data = {}
        self.auth_data[auth_type] = dict(payload) if payload is not None else None

    def is_linked(self, auth_type: str) -> bool:
        """True if a non-tombstone payload exists for the provider."""
        return (self.auth_data or {}).get(auth_type) is not None

    # -- serialization ----------------------------------------------------

    def merge_server_data(self, data: Mapping[str, Any]) -> None:
        """Fold a server response into this identity.

        ``sessionToken`` is lifted into ``session_token`` and never kept in
        the attribute bag.
        """
        data = dict(data)
        token = data.pop(SESSION_TOKEN_KEY, None)
        if token:
            self.session_token = token
        if OBJECT_ID_KEY in data:
            self.id = data.pop(OBJECT_ID_KEY)
        if AUTH_DATA_KEY in data:
            auth_data = data.pop(AUTH_DATA_KEY)
            self.auth_data = dict(auth_data) if auth_data is not None else None
        if SMS_CODE_KEY in data:
            self.sms_code = data.pop(SMS_CODE_KEY)
        if PASSWORD_KEY in data:
            self.password = data.pop(PASSWORD_KEY)
        self.attributes.update(data)

    def to_request_body(self) -> dict[str, Any]:
        """Full attribute snapshot as sent to the server."""
        body = copy.deepcopy(self.attributes)
        if self.auth_data is not None:
            body[AUTH_DATA_KEY] = copy.deepcopy(self.auth_data)
        if self.password is not None:
            body[PASSWORD_KEY] = self.password
        if self.sms_code is not None:
            body[SMS_CODE_KEY] = self.sms_code
        return body

    def to_record(self) -> dict[str, Any]:
        """Serialize to the durable session record.

        The password is never written; tombstones are dropped.
        """
        record = copy.deepcopy(self.attributes)
        if self.auth_data is not None:
            record[AUTH_DATA_KEY] = {
                key: copy.deepcopy(payload)
                for key, payload in self.auth_data.items()
                if payload is not None
            }
        if self.sms_code is not None:
            record[SMS_CODE_KEY] = self.sms_code
        record[RECORD_ID_KEY] = self.id
        record[RECORD_SESSION_TOKEN_KEY] = self.session_token
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Identity:
        """Deserialize from the durable session record."""
        data = dict(record)
        data.pop(PASSWORD_KEY, None)
        identity = cls(
            id=data.pop(RECORD_ID_KEY, None),
            session_token=data.pop(RECORD_SESSION_TOKEN_KEY, None),
        )
        identity.merge_server_data(data)
        return identity


@dataclass
class SessionTransaction:
    """Mutable value passed through the post-operation pipeline steps."""

    identity: Identity
    promote: bool
    persisted: bool = False
