"""etcd v3 JSON gateway protocol: request paths and response parsing.

The gateway is grpc-gateway over the ``etcdserverpb`` Auth service. Fields at
their protobuf default are left out of responses, so every model field has one.
``bytes`` fields arrive base64 encoded and ``uint64`` fields arrive as strings.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import (
    Base64Bytes,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from etcd_authdump.auth import AuthStatus, Permission, PermissionType


AUTHENTICATE = "/v3/auth/authenticate"
AUTH_STATUS = "/v3/auth/status"
ROLE_LIST = "/v3/auth/role/list"
ROLE_GET = "/v3/auth/role/get"
USER_LIST = "/v3/auth/user/list"
USER_GET = "/v3/auth/user/get"

# gRPC status codes the gateway reports in error bodies
CODE_PERMISSION_DENIED = 7
CODE_UNAUTHENTICATED = 16

AUTH_NOT_ENABLED_MESSAGE = "etcdserver: authentication is not enabled"

# etcd server messages for a token that must be refreshed
INVALID_TOKEN_MESSAGES = (
    "etcdserver: invalid auth token",
    "etcdserver: revision of auth store is old",
)


class _Message(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


# ── Server → Client messages ─────────────────────────────────────────

class AuthenticateResponse(_Message):
    token: str = ""


class AuthStatusResponse(_Message):
    enabled: bool = False
    auth_revision: int = Field(default=0, ge=0, alias="authRevision")

    def to_status(self) -> AuthStatus:
        return AuthStatus(enabled=self.enabled, revision=self.auth_revision)


class PermissionMessage(_Message):
    perm_type: PermissionType = Field(default=PermissionType.READ, alias="permType")
    key: Base64Bytes = b""
    range_end: Base64Bytes = b""

    @field_validator("perm_type", mode="before")
    @classmethod
    def _perm_type_by_name(cls, value: Any) -> Any:
        # the gateway spells enums by name
        if isinstance(value, str):
            try:
                return PermissionType[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown permission type: {value!r}") from None
        return value

    def to_permission(self) -> Permission:
        return Permission(type=self.perm_type, key=self.key, range_end=self.range_end)


class RoleListResponse(_Message):
    roles: list[str] = Field(default_factory=list)


class RoleGetResponse(_Message):
    perm: list[PermissionMessage] = Field(default_factory=list)


class UserListResponse(_Message):
    users: list[str] = Field(default_factory=list)


class UserGetResponse(_Message):
    roles: list[str] = Field(default_factory=list)


class ErrorBody(_Message):
    error: str = ""
    message: str = ""
    code: int | None = None

    @property
    def text(self) -> str:
        return self.message or self.error


# ── Serialization / Deserialization ───────────────────────────────────

def serialize_request(body: dict[str, Any] | None = None) -> str:
    """Serialize a request body to JSON."""
    return json.dumps(body or {})


def deserialize_response(model: type[_Message], data: str | bytes) -> Any:
    """Parse a gateway JSON response into ``model``.

    Raises ``ValueError`` when the payload is not JSON or does not fit the model.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        return model.model_validate_json(data or "{}")
    except ValidationError as e:
        raise ValueError(f"Malformed {model.__name__}: {e}") from e


def deserialize_error(data: str | bytes) -> ErrorBody:
    """Parse a gateway error body; a body that is not JSON becomes the message."""
    if isinstance(data, bytes):
        data = data.decode("utf-8", "replace")
    try:
        return ErrorBody.model_validate_json(data)
    except ValidationError:
        return ErrorBody(message=data.strip())
