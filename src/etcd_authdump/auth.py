"""Auth data classes and etcdctl command compilation for roles, users and permissions."""

from __future__ import annotations

import enum
import shlex
from dataclasses import dataclass, field


class PermissionType(enum.Enum):
    READ = 0
    WRITE = 1
    READWRITE = 2

    @property
    def word(self) -> str:
        """The etcdctl spelling (``read``, ``write``, ``readwrite``)."""
        return self.name.lower()


@dataclass(frozen=True)
class AuthStatus:
    enabled: bool
    revision: int


@dataclass(frozen=True)
class Permission:
    type: PermissionType
    key: bytes
    range_end: bytes = b""


@dataclass(frozen=True)
class Role:
    name: str
    permissions: tuple[Permission, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class User:
    name: str
    roles: tuple[str, ...] = field(default_factory=tuple)


# ── Quoting ───────────────────────────────────────────────────────────


def quote(value: str | bytes) -> str:
    """Shell-quote a name or key for inclusion in a command line.

    Bytes are decoded with ``surrogateescape`` so that keys which are not
    valid UTF-8 come back out byte-for-byte when the line is re-encoded
    the same way.
    """
    if isinstance(value, bytes):
        value = value.decode("utf-8", "surrogateescape")
    return shlex.quote(value)


# ── Command compilation ───────────────────────────────────────────────


def compile_role_add(role: str) -> str:
    return f"role add {quote(role)}"


def compile_grant_permission(
    role: str,
    perm_type: PermissionType,
    key: bytes,
    range_end: bytes | None = None,
    *,
    prefix: bool = False,
) -> str:
    cmd = f"role grant-permission {quote(role)} {quote(perm_type.word)} {quote(key)}"
    if range_end is not None:
        cmd += f" {quote(range_end)}"
    if prefix:
        cmd += " --prefix"
    return cmd


def compile_user_add(user: str) -> str:
    return f"user add {quote(user)}"


def compile_grant_role(user: str, role: str) -> str:
    return f"user grant-role {quote(user)} {quote(role)}"


def compile_auth_toggle(enabled: bool) -> str:
    return "auth enable" if enabled else "auth disable"
