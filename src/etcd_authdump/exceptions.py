"""Exception hierarchy for etcd-auth-dump."""

from __future__ import annotations


class AuthDumpError(Exception):
    """Base exception for all etcd-auth-dump errors."""


class ConfigError(AuthDumpError):
    """The client configuration (usually from the environment) is invalid."""


class ConnectionError(AuthDumpError):
    """Failed to reach any of the configured etcd endpoints."""


class AuthenticationError(AuthDumpError):
    """Authentication failed (bad credentials or an invalid token)."""


class PermissionDeniedError(AuthDumpError):
    """The authenticated user may not read the auth configuration."""


class EtcdError(AuthDumpError):
    """The etcd gateway answered with an error."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class UnchangedError(AuthDumpError):
    """The auth revision equals the one the caller already has.

    Not a failure: the caller has nothing to do.
    """

    def __init__(self, revision: int) -> None:
        super().__init__(f"unchanged: auth revision is still {revision}")
        self.revision = revision


class UpstreamReadError(AuthDumpError):
    """A read against the cluster failed while dumping."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class InconsistentSnapshotError(AuthDumpError):
    """The auth configuration changed while it was being read."""

    def __init__(self, start_revision: int, end_revision: int) -> None:
        super().__init__(
            "authentication configuration was changed during the dump "
            f"(auth revision {start_revision} at start, {end_revision} at end)"
        )
        self.start_revision = start_revision
        self.end_revision = end_revision


class DumpTimeoutError(AuthDumpError):
    """The dump did not finish within the requested timeout."""
