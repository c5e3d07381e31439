"""
Connection Descriptor

The resolved, immutable set of parameters needed to open one PostgreSQL
connection, together with the TLS mode to use for it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class TLSMode(Enum):
    """Transport security modes understood by the connection bootstrap"""
    DISABLED = "disabled"
    OPPORTUNISTIC = "opportunistic"  # encrypted, any server certificate accepted
    VERIFY_FULL = "verify_full"
    INSECURE_NO_VERIFY = "insecure_no_verify"
    UNSET = "unset"


# TLS mode -> libpq sslmode
LIBPQ_SSL_MODES = {
    TLSMode.DISABLED: "disable",
    TLSMode.OPPORTUNISTIC: "require",
    TLSMode.VERIFY_FULL: "verify-full",
    TLSMode.INSECURE_NO_VERIFY: "require",
}


@dataclass(frozen=True)
class TLSSettings:
    """
    TLS mode plus, for VERIFY_FULL, the trust material.

    A VERIFY_FULL setting without a bundle asks the driver to verify
    against the system trust roots.
    """
    mode: TLSMode = TLSMode.UNSET
    ca_bundle: Optional[bytes] = field(default=None, repr=False)
    ca_path: Optional[str] = None

    @classmethod
    def from_ssl_mode(cls, ssl_mode: str) -> "TLSSettings":
        """Translate an explicit sslmode value"""
        if ssl_mode == "require":
            return cls(TLSMode.OPPORTUNISTIC)
        if ssl_mode == "disable":
            return cls(TLSMode.DISABLED)
        return cls(TLSMode.VERIFY_FULL)

    def to_connect_kwargs(self) -> Dict[str, Any]:
        if self.mode == TLSMode.UNSET:
            return {}
        kwargs = {"sslmode": LIBPQ_SSL_MODES[self.mode]}
        if self.mode == TLSMode.VERIFY_FULL:
            kwargs["sslrootcert"] = self.ca_path or "system"
        return kwargs


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Resolved connection parameters, produced once by ConfigResolver"""
    host: str
    port: int
    user: str
    password: str
    database: str
    tls: TLSSettings = field(default_factory=TLSSettings)
    source: str = "default"

    def __post_init__(self):
        if not self.host:
            raise ValueError("host must be non-empty")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")

    @property
    def tls_mode(self) -> TLSMode:
        return self.tls.mode

    def to_connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for psycopg2.connect"""
        kwargs = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "dbname": self.database,
        }
        kwargs.update(self.tls.to_connect_kwargs())
        return kwargs

    def redacted(self) -> Dict[str, Any]:
        """Descriptor as a dict with the password masked, for diagnostics"""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": "****" if self.password else "",
            "database": self.database,
            "tls_mode": self.tls.mode.value,
            "ca_path": self.tls.ca_path,
            "source": self.source,
        }
