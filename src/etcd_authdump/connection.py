"""HTTP connection to the etcd v3 JSON gateway with endpoint failover and token auth."""

from __future__ import annotations

import logging
import ssl
from typing import Any

import httpx

from etcd_authdump._protocol import (
    AUTH_NOT_ENABLED_MESSAGE,
    AUTHENTICATE,
    CODE_PERMISSION_DENIED,
    CODE_UNAUTHENTICATED,
    INVALID_TOKEN_MESSAGES,
    AuthenticateResponse,
    deserialize_error,
    deserialize_response,
    serialize_request,
)
from etcd_authdump.config import ClientConfig
from etcd_authdump.exceptions import (
    AuthenticationError,
    ConfigError,
    ConnectionError,
    EtcdError,
    PermissionDeniedError,
)

logger = logging.getLogger("etcd_authdump")


class Connection:
    """Manages the HTTP connection to an etcd cluster."""

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
        if not endpoints:
            raise ConnectionError("No endpoints configured")
        self._endpoints = list(endpoints)
        self._username = username
        self._password = password
        self._verify = verify
        self._timeout = httpx.Timeout(command_timeout, connect=dial_timeout)
        self._transport = transport

        self._http: httpx.AsyncClient | None = None
        self._current = 0
        self._token: str | None = None
        self._connected = False

    # ── Properties ────────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def endpoint(self) -> str:
        """The endpoint the last request went to."""
        return self._endpoints[self._current]

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    # ── Connection lifecycle ──────────────────────────────────────────

    async def connect(self) -> None:
        """Open the HTTP client and authenticate when credentials are configured."""
        if self._connected:
            return
        self._http = httpx.AsyncClient(
            timeout=self._timeout,
            verify=self._verify,
            transport=self._transport,
        )
        try:
            if self._username:
                await self._authenticate()
        except BaseException:
            await self._http.aclose()
            self._http = None
            raise
        self._connected = True

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        self._connected = False
        self._token = None
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> Connection:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def _authenticate(self) -> None:
        """Exchange user name and password for a token."""
        if not self._username or self._password is None:
            raise AuthenticationError("No credentials provided (need a user and a password)")
        body = {"name": self._username, "password": self._password}
        try:
            raw = await self._post(AUTHENTICATE, body, with_token=False)
        except EtcdError as e:
            if str(e) != AUTH_NOT_ENABLED_MESSAGE:
                raise
            logger.debug("Auth is not enabled on the cluster; continuing without a token")
            self._token = None
            return
        response = deserialize_response(AuthenticateResponse, raw)
        self._token = response.token or None

    # ── Request execution ─────────────────────────────────────────────

    async def call(self, path: str, body: dict[str, Any] | None = None) -> bytes:
        """POST ``body`` to a gateway ``path`` and return the raw response body.

        An expired token is refreshed once and the request repeated.
        """
        if not self._connected or self._http is None:
            raise ConnectionError("Not connected")
        try:
            return await self._post(path, body)
        except (AuthenticationError, EtcdError) as e:
            if not self._username or str(e) not in INVALID_TOKEN_MESSAGES:
                raise
            logger.info(f"Auth token rejected ({e}); re-authenticating")
            await self._authenticate()
            return await self._post(path, body)

    async def _post(self, path: str, body: dict[str, Any] | None, *, with_token: bool = True) -> bytes:
        """Send to the current endpoint, failing over to the others on transport errors."""
        assert self._http is not None
        headers = {"Content-Type": "application/json"}
        if with_token and self._token:
            headers["Authorization"] = self._token
        content = serialize_request(body)

        errors: list[str] = []
        for attempt in range(len(self._endpoints)):
            index = (self._current + attempt) % len(self._endpoints)
            endpoint = self._endpoints[index]
            try:
                response = await self._http.post(f"{endpoint}{path}", content=content, headers=headers)
            except httpx.TransportError as e:
                logger.debug(f"Request to {endpoint}{path} failed: {e!r}")
                errors.append(f"{endpoint}: {e}")
                continue
            if index != self._current:
                logger.info(f"Switched to endpoint {endpoint}")
                self._current = index
            _raise_for_error(response)
            return response.content

        raise ConnectionError(f"Failed to reach etcd ({'; '.join(errors)})")


def _raise_for_error(response: httpx.Response) -> None:
    """Turn a gateway error response into the matching exception."""
    if response.status_code < 400:
        return
    body = deserialize_error(response.content)
    message = body.text or f"HTTP {response.status_code} from {response.request.url}"
    if body.code == CODE_UNAUTHENTICATED or response.status_code == 401:
        raise AuthenticationError(message)
    if body.code == CODE_PERMISSION_DENIED or response.status_code == 403:
        raise PermissionDeniedError(message)
    raise EtcdError(message, code=body.code)


def ssl_context(config: ClientConfig) -> ssl.SSLContext:
    try:
        ctx = ssl.create_default_context(cafile=config.ca_cert)
        if config.cert and config.key:
            ctx.load_cert_chain(config.cert, config.key)
    except (OSError, ssl.SSLError) as e:
        raise ConfigError(f"Cannot load TLS material: {e}") from e
    if config.insecure_skip_verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx
