"""Interface definitions for addonfleet collaborators."""

from addonfleet.interfaces.cloud_provider import ClusterManager
from addonfleet.interfaces.cloud_types import BearerToken, ClusterInfo
from addonfleet.interfaces.runtime import (
    ClusterVisitor,
    KubernetesVendor,
    Runtime,
    RuntimeConfig,
    RuntimeFactory,
)
from addonfleet.interfaces.state_store import MetadataStore
from addonfleet.interfaces.token_source import TokenSource

__all__ = [
    "BearerToken",
    "ClusterInfo",
    "ClusterManager",
    "ClusterVisitor",
    "KubernetesVendor",
    "MetadataStore",
    "Runtime",
    "RuntimeConfig",
    "RuntimeFactory",
    "TokenSource",
]
