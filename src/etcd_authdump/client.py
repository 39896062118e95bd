"""EtcdClient - async read-only client for the etcd auth API."""

from __future__ import annotations

import ssl
from typing import Any

import httpx

from etcd_authdump._protocol import (
    AUTH_STATUS,
    ROLE_GET,
    ROLE_LIST,
    USER_GET,
    USER_LIST,
    AuthStatusResponse,
    RoleGetResponse,
    RoleListResponse,
    UserGetResponse,
    UserListResponse,
    deserialize_response,
)
from etcd_authdump.auth import AuthStatus, Permission
from etcd_authdump.config import ClientConfig
from etcd_authdump.connection import Connection, ssl_context


class EtcdClient:
    """Async client for the parts of the etcd auth API the dump needs.

    Usage::

        async with EtcdClient.from_env() as client:
            result = await dump(client)
    """

    def __init__(
        self,
        endpoints: list[str],
        *,
        username: str | None = None,
        password: str | None = None,
        verify: ssl.SSLContext | bool = True,
        dial_timeout: float = 5.0,
        command_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._conn = Connection(
            endpoints,
            username=username,
            password=password,
            verify=verify,
            dial_timeout=dial_timeout,
            command_timeout=command_timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> EtcdClient:
        return cls(
            config.endpoint_urls(),
            username=config.username,
            password=config.password,
            verify=ssl_context(config) if config.uses_tls else True,
            dial_timeout=config.dial_timeout,
            command_timeout=config.command_timeout,
            transport=transport,
        )

    @classmethod
    def from_env(cls, *, transport: httpx.AsyncBaseTransport | None = None) -> EtcdClient:
        """Build a client from the ``ETCD_*`` environment variables."""
        return cls.from_config(ClientConfig.from_env(), transport=transport)

    # ── Connection lifecycle ──────────────────────────────────────────

    async def connect(self) -> None:
        """Connect and authenticate."""
        await self._conn.connect()

    async def close(self) -> None:
        """Close the connection."""
        await self._conn.close()

    async def __aenter__(self) -> EtcdClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def connected(self) -> bool:
        return self._conn.connected

    @property
    def endpoint(self) -> str:
        return self._conn.endpoint

    # ── Auth reads ────────────────────────────────────────────────────

    async def auth_status(self) -> AuthStatus:
        raw = await self._conn.call(AUTH_STATUS)
        return deserialize_response(AuthStatusResponse, raw).to_status()

    async def role_list(self) -> list[str]:
        raw = await self._conn.call(ROLE_LIST)
        return list(deserialize_response(RoleListResponse, raw).roles)

    async def role_get(self, name: str) -> list[Permission]:
        raw = await self._conn.call(ROLE_GET, {"role": name})
        return [p.to_permission() for p in deserialize_response(RoleGetResponse, raw).perm]

    async def user_list(self) -> list[str]:
        raw = await self._conn.call(USER_LIST)
        return list(deserialize_response(UserListResponse, raw).users)

    async def user_get(self, name: str) -> list[str]:
        raw = await self._conn.call(USER_GET, {"name": name})
        return list(deserialize_response(UserGetResponse, raw).roles)
