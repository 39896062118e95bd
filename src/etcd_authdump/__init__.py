"""etcd_authdump - dump etcd auth configuration as etcdctl commands."""

# Data model
from etcd_authdump.auth import AuthStatus, Permission, PermissionType, Role, User

# Exceptions
from etcd_authdump.exceptions import (
    AuthDumpError,
    AuthenticationError,
    ConfigError,
    ConnectionError,
    DumpTimeoutError,
    EtcdError,
    InconsistentSnapshotError,
    PermissionDeniedError,
    UnchangedError,
    UpstreamReadError,
)

# Config
from etcd_authdump.config import ClientConfig

# Client
from etcd_authdump.client import EtcdClient

# Dump
from etcd_authdump.dump import (
    AuthStore,
    DumpResult,
    KeyExpr,
    KeyKind,
    classify_permission,
    dump,
    is_prefix_bound,
)

__version__ = "0.1.0"

__all__ = [
    # Data model
    "AuthStatus",
    "Permission",
    "PermissionType",
    "Role",
    "User",
    # Exceptions
    "AuthDumpError",
    "ConfigError",
    "ConnectionError",
    "AuthenticationError",
    "PermissionDeniedError",
    "EtcdError",
    "UnchangedError",
    "UpstreamReadError",
    "InconsistentSnapshotError",
    "DumpTimeoutError",
    # Config
    "ClientConfig",
    # Client
    "EtcdClient",
    # Dump
    "AuthStore",
    "DumpResult",
    "KeyExpr",
    "KeyKind",
    "classify_permission",
    "dump",
    "is_prefix_bound",
]
