"""Dump the auth configuration of a cluster as etcdctl commands.

The commands recreate roles, their permissions, users, their role grants and
the auth toggle on an empty cluster. Passwords can't be recovered, so users are
added without one.

etcd offers no way to read the whole auth state atomically. The dump reads the
auth revision before and after enumerating, and gives up if it moved.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Protocol, TypeVar

from etcd_authdump.auth import (
    AuthStatus,
    Permission,
    Role,
    User,
    compile_auth_toggle,
    compile_grant_permission,
    compile_grant_role,
    compile_role_add,
    compile_user_add,
)
from etcd_authdump.exceptions import (
    DumpTimeoutError,
    InconsistentSnapshotError,
    UnchangedError,
    UpstreamReadError,
)

logger = logging.getLogger("etcd_authdump")

T = TypeVar("T")

WHOLE_KEYSPACE = b"\x00"


class AuthStore(Protocol):
    """The reads a dump makes against the cluster."""

    async def auth_status(self) -> AuthStatus: ...

    async def role_list(self) -> list[str]: ...

    async def role_get(self, name: str) -> list[Permission]: ...

    async def user_list(self) -> list[str]: ...

    async def user_get(self, name: str) -> list[str]: ...


@dataclass(frozen=True)
class DumpResult:
    commands: list[str]
    revision: int


# ── Range classification ──────────────────────────────────────────────


class KeyKind(enum.Enum):
    WHOLE_KEYSPACE = "whole_keyspace"
    EXACT = "exact"
    PREFIX = "prefix"
    RANGE = "range"


@dataclass(frozen=True)
class KeyExpr:
    kind: KeyKind
    key: bytes
    range_end: bytes | None = None

    @property
    def prefix(self) -> bool:
        return self.kind in (KeyKind.WHOLE_KEYSPACE, KeyKind.PREFIX)


def is_prefix_bound(key: bytes, range_end: bytes) -> bool:
    """Whether ``range_end`` is ``key`` plus one, read as a big-endian integer.

    That is the range end etcdctl uses for ``--prefix``. Both must be non-empty
    and of the same length; a carry out of the first byte wraps around.
    """
    n = len(key)
    if n != len(range_end) or n == 0:
        return False
    carry = 1
    for i in range(n - 1, -1, -1):
        if (key[i] + carry) & 0xFF != range_end[i]:
            return False
        if key[i] != 0xFF:
            carry = 0
    return True


def classify_permission(perm: Permission) -> KeyExpr:
    """Map a permission's ``[key, range_end)`` to the etcdctl argument form."""
    if perm.key == WHOLE_KEYSPACE and perm.range_end == WHOLE_KEYSPACE:
        return KeyExpr(KeyKind.WHOLE_KEYSPACE, b"")
    if perm.key == perm.range_end:
        return KeyExpr(KeyKind.EXACT, perm.key)
    if is_prefix_bound(perm.key, perm.range_end):
        return KeyExpr(KeyKind.PREFIX, perm.key)
    return KeyExpr(KeyKind.RANGE, perm.key, perm.range_end)


def compile_permission(role: str, perm: Permission) -> str:
    expr = classify_permission(perm)
    return compile_grant_permission(role, perm.type, expr.key, expr.range_end, prefix=expr.prefix)


def compile_role(role: Role) -> list[str]:
    return [compile_role_add(role.name)] + [compile_permission(role.name, p) for p in role.permissions]


def compile_user(user: User) -> list[str]:
    return [compile_user_add(user.name)] + [compile_grant_role(user.name, r) for r in user.roles]


# ── Dump ──────────────────────────────────────────────────────────────


async def _read(operation: str, call: Awaitable[T]) -> T:
    try:
        return await call
    except Exception as e:
        raise UpstreamReadError(operation, e) from e


async def _dump(store: AuthStore, prior_revision: int, command_prefix: str) -> DumpResult:
    status = await _read("auth status", store.auth_status())
    if status.revision == prior_revision:
        raise UnchangedError(status.revision)

    roles: list[Role] = []
    for name in await _read("role list", store.role_list()):
        perms = await _read(f"role get {name!r}", store.role_get(name))
        roles.append(Role(name=name, permissions=tuple(perms)))

    users: list[User] = []
    for name in await _read("user list", store.user_list()):
        granted = await _read(f"user get {name!r}", store.user_get(name))
        users.append(User(name=name, roles=tuple(granted)))

    commands: list[str] = []
    for role in roles:
        commands.extend(compile_role(role))
    for user in users:
        commands.extend(compile_user(user))
    commands.append(compile_auth_toggle(status.enabled))

    end = await _read("auth status", store.auth_status())
    if end.revision != status.revision:
        raise InconsistentSnapshotError(status.revision, end.revision)

    if command_prefix:
        commands = [f"{command_prefix} {c}" for c in commands]

    logger.debug(
        f"Dumped {len(roles)} role(s) and {len(users)} user(s) at auth revision {status.revision}"
    )
    return DumpResult(commands=commands, revision=status.revision)


async def dump(
    store: AuthStore,
    prior_revision: int = 0,
    *,
    timeout: float | None = None,
    command_prefix: str = "",
) -> DumpResult:
    """Dump the auth configuration of ``store`` as a list of commands.

    Args:
        store: An already connected client.
        prior_revision: The revision of a previous dump. When the cluster is
            still at that revision ``UnchangedError`` is raised and nothing
            else is read. ``0`` means there is no previous dump; note that a
            cluster whose auth revision is also ``0`` reports unchanged.
        timeout: Seconds the whole dump may take.
        command_prefix: Prepended to each command, e.g. ``"etcdctl"``.

    Returns:
        The commands and the auth revision they were taken at.

    Raises:
        UnchangedError: Nothing changed since ``prior_revision``.
        UpstreamReadError: A read against the cluster failed.
        InconsistentSnapshotError: The auth configuration changed mid-dump.
        DumpTimeoutError: ``timeout`` expired.
    """
    if prior_revision < 0:
        raise ValueError(f"prior_revision must not be negative, got {prior_revision}")
    try:
        return await asyncio.wait_for(_dump(store, prior_revision, command_prefix), timeout)
    except asyncio.TimeoutError as e:
        raise DumpTimeoutError(f"dump did not finish within {timeout}s") from e
