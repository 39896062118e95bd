"""Client configuration read from ``ETCD_*`` environment variables."""

from __future__ import annotations

import os
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from etcd_authdump.exceptions import ConfigError

DEFAULT_ENDPOINT = "http://127.0.0.1:2379"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"", "0", "false", "no", "off"}


class ClientConfig(BaseModel):
    """Where and how to reach the cluster."""

    model_config = ConfigDict(frozen=True)

    endpoints: list[str] = Field(default_factory=lambda: [DEFAULT_ENDPOINT], min_length=1)
    username: str | None = None
    password: str | None = None
    ca_cert: str | None = None
    cert: str | None = None
    key: str | None = None
    insecure_skip_verify: bool = False
    dial_timeout: float = Field(default=5.0, gt=0)
    command_timeout: float = Field(default=10.0, gt=0)

    @field_validator("endpoints")
    @classmethod
    def _strip_endpoints(cls, value: list[str]) -> list[str]:
        endpoints = [e.strip().rstrip("/") for e in value if e.strip()]
        if not endpoints:
            raise ValueError("at least one endpoint is required")
        return endpoints

    @model_validator(mode="after")
    def _check_pairs(self) -> ClientConfig:
        if self.password is not None and not self.username:
            raise ValueError("a password was given without a user")
        if bool(self.cert) != bool(self.key):
            raise ValueError("a client certificate and key must be given together")
        return self

    @property
    def uses_tls(self) -> bool:
        return bool(self.ca_cert or self.cert or self.insecure_skip_verify)

    def endpoint_urls(self) -> list[str]:
        """Endpoints with a scheme; bare ``host:port`` gets one from the TLS settings."""
        scheme = "https" if self.uses_tls else "http"
        return [e if "://" in e else f"{scheme}://{e}" for e in self.endpoints]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a config from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        if env.get("ETCD_ENDPOINTS"):
            values["endpoints"] = env["ETCD_ENDPOINTS"].split(",")

        user = env.get("ETCD_USER")
        if user:
            # etcdctl accepts --user=name:password
            name, sep, password = user.partition(":")
            values["username"] = name
            if sep:
                values["password"] = password
        if env.get("ETCD_PASSWORD"):
            values["password"] = env["ETCD_PASSWORD"]

        for var, name in (("ETCD_CACERT", "ca_cert"), ("ETCD_CERT", "cert"), ("ETCD_KEY", "key")):
            if env.get(var):
                values[name] = env[var]

        skip = env.get("ETCD_INSECURE_SKIP_TLS_VERIFY", "").strip().lower()
        if skip in _TRUE:
            values["insecure_skip_verify"] = True
        elif skip not in _FALSE:
            raise ConfigError(f"ETCD_INSECURE_SKIP_TLS_VERIFY: not a boolean: {skip!r}")

        for var, name in (("ETCD_DIAL_TIMEOUT", "dial_timeout"), ("ETCD_COMMAND_TIMEOUT", "command_timeout")):
            if env.get(var):
                values[name] = env[var]

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid etcd client configuration: {e}") from e
