"""Data types for the cluster-manager and token-source interfaces."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BearerToken:
    """OAuth2 access token."""

    value: str
    expiry: datetime | None = None


@dataclass(frozen=True)
class ClusterInfo:
    """GKE cluster connection details as returned by the API."""

    endpoint: str
    ca_certificate: str  # base64 of PEM
    name: str | None = None
    status: str | None = None
    version: str | None = None
