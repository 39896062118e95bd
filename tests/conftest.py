"""Shared fixtures: an in-memory stand-in for the etcd v3 JSON gateway."""

from __future__ import annotations

import base64
import json
from typing import Any

import httpx
import pytest


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeGateway:
    """Answers ``/v3/auth/*`` requests from in-memory state.

    ``down`` holds hosts that refuse connections. ``requests`` records every
    request that reached a host as ``(host, path, body, authorization)``.
    """

    def __init__(self) -> None:
        self.enabled = True
        self.revision = 1
        self.roles: dict[str, list[dict[str, Any]]] = {}
        self.users: dict[str, list[str]] = {}
        self.credentials: dict[str, str] = {}
        self.tokens: set[str] = set()
        self.down: set[str] = set()
        self.requests: list[tuple[str, str, dict[str, Any], str | None]] = []
        self._issued = 0

    def add_role(self, name: str, *perms: tuple[str, bytes, bytes]) -> None:
        self.roles[name] = [
            {"permType": t, "key": _b64(k), "range_end": _b64(e)} for t, k, e in perms
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        # late-bound so tests can swap in a wrapping handler
        return httpx.MockTransport(lambda request: self.handle(request))

    def handle(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host in self.down:
            raise httpx.ConnectError("connection refused", request=request)
        body = json.loads(request.content or b"{}")
        token = request.headers.get("Authorization")
        self.requests.append((host, request.url.path, body, token))

        path = request.url.path
        if path == "/v3/auth/authenticate":
            if not self.enabled:
                return _error(400, 9, "etcdserver: authentication is not enabled")
            if self.credentials.get(body.get("name")) != body.get("password"):
                return _error(401, 3, "etcdserver: authentication failed, invalid user ID or password")
            self._issued += 1
            issued = f"token-{self._issued}"
            self.tokens.add(issued)
            return httpx.Response(200, json={"token": issued})

        if self.enabled and self.credentials and token not in self.tokens:
            return _error(401, 16, "etcdserver: invalid auth token")

        if path == "/v3/auth/status":
            return httpx.Response(200, json={"enabled": self.enabled, "authRevision": str(self.revision)})
        if path == "/v3/auth/role/list":
            return httpx.Response(200, json={"roles": list(self.roles)})
        if path == "/v3/auth/role/get":
            name = body.get("role")
            if name not in self.roles:
                return _error(400, 9, "etcdserver: role name not found")
            return httpx.Response(200, json={"perm": self.roles[name]})
        if path == "/v3/auth/user/list":
            return httpx.Response(200, json={"users": list(self.users)})
        if path == "/v3/auth/user/get":
            name = body.get("name")
            if name not in self.users:
                return _error(400, 9, "etcdserver: user name not found")
            return httpx.Response(200, json={"roles": self.users[name]})
        return httpx.Response(404, text="Not Found")


def _error(status: int, code: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error": message, "code": code, "message": message})


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
