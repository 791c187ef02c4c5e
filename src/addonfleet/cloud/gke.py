"""GKE credential resolution.

Turns a cluster identity and the process-wide credential source into a
Kubernetes client configuration: look the cluster up in the GKE API with a
token scoped to cloud-platform, decode its CA certificate, and wrap the
token source so every Kubernetes request carries a fresh bearer token.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import threading
from collections.abc import Callable
from typing import Any

from addonfleet.auth.token_source import (
    default_token_source,
    read_key_file,
    token_source_from_json,
)
from addonfleet.clients.gke_client import GKEClient
from addonfleet.clients.kubernetes_client import ClientConfiguration
from addonfleet.core.config import (
    CredentialSource,
    DefaultApplicationCredential,
    ServiceAccountKeyFile,
)
from addonfleet.core.exceptions import CertificateDecodeError, ClusterLookupError
from addonfleet.core.models import ClusterIdentity
from addonfleet.interfaces.cloud_provider import ClusterManager
from addonfleet.interfaces.runtime import KubernetesVendor
from addonfleet.interfaces.token_source import TokenSource
from addonfleet.utils.logging import get_logger

logger = get_logger(__name__)

ClusterManagerFactory = Callable[[TokenSource, str], ClusterManager]


def cluster_resource_name(identity: ClusterIdentity) -> str:
    """Fully-qualified GKE resource name for a cluster."""
    return f"projects/{identity.project}/locations/{identity.location}/clusters/{identity.name}"


def decode_ca_certificate(encoded: str) -> bytes:
    """Decode the base64 encoded PEM CA certificate returned by the GKE API.

    Line breaks are ignored; any other character outside the base64
    alphabet is rejected.

    Raises:
        CertificateDecodeError: If ``encoded`` is not strictly valid base64
    """
    unwrapped = encoded.replace("\r", "").replace("\n", "")
    try:
        return base64.b64decode(unwrapped, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CertificateDecodeError(f"Failed to base64 decode the cluster CA cert: {e}") from e


class CredentialResolver:
    """Resolves Kubernetes client configurations for GKE clusters.

    The credential source is fixed for the resolver's lifetime. With the
    default application credential, one token source is created on first
    use and shared by all later resolutions; with a service account key,
    the key file is re-read and a fresh token source derived per call.
    """

    def __init__(
        self,
        credential_source: CredentialSource,
        user_agent: str,
        cluster_manager_factory: ClusterManagerFactory = GKEClient,
    ):
        """Initialize the resolver.

        Args:
            credential_source: Process-wide credential strategy
            user_agent: User agent for GKE and Kubernetes calls
            cluster_manager_factory: Builds a cluster-manager client from a
                token source and user agent
        """
        self.credential_source = credential_source
        self.user_agent = user_agent
        self._cluster_manager_factory = cluster_manager_factory
        self._default_token_source: TokenSource | None = None
        self._lock = threading.Lock()

    def resolve(self, identity: ClusterIdentity) -> ClientConfiguration:
        """Resolve the client configuration for one cluster.

        Args:
            identity: Cluster to resolve

        Returns:
            ClientConfiguration owned by the caller

        Raises:
            CredentialError: If any step of the resolution fails
        """
        source = self.credential_source
        logger.info("resolving_cluster_credentials", cluster=str(identity), strategy=source.strategy)

        if isinstance(source, ServiceAccountKeyFile):
            return self._resolve_with_service_account_key(identity, source.path)
        if isinstance(source, DefaultApplicationCredential):
            return self._resolve_with_default_credential(identity)
        raise TypeError(f"Unsupported credential source: {source!r}")

    def _resolve_with_service_account_key(
        self, identity: ClusterIdentity, key_file: str
    ) -> ClientConfiguration:
        data = read_key_file(key_file)
        token_source = token_source_from_json(data)
        return self._lookup(identity, token_source)

    def _resolve_with_default_credential(self, identity: ClusterIdentity) -> ClientConfiguration:
        with self._lock:
            if self._default_token_source is None:
                self._default_token_source = default_token_source()
            token_source = self._default_token_source
        return self._lookup(identity, token_source)

    def _lookup(self, identity: ClusterIdentity, token_source: TokenSource) -> ClientConfiguration:
        name = cluster_resource_name(identity)
        try:
            cluster_manager = self._cluster_manager_factory(token_source, self.user_agent)
        except Exception as e:
            raise ClusterLookupError(f"Failed to create the container service: {e}") from e

        info = cluster_manager.get_cluster(name)
        # ClusterCaCertificate is PEM, then base64 encoded
        ca_data = decode_ca_certificate(info.ca_certificate)

        logger.info("cluster_credentials_resolved", cluster=str(identity), endpoint=info.endpoint)
        return ClientConfiguration(
            host=f"https://{info.endpoint}",
            ca_data=ca_data,
            token_source=token_source,
            user_agent=self.user_agent,
        )


class GKECluster(KubernetesVendor):
    """A discovered GKE cluster."""

    def __init__(
        self,
        identity: ClusterIdentity,
        resolver: CredentialResolver,
        attributes: dict[str, Any] | None = None,
    ):
        """Initialize the vendor.

        Args:
            identity: Cluster identity
            resolver: Shared credential resolver
            attributes: Extra attributes exposed to addons (env, labels, ...)
        """
        self.identity = identity
        self.resolver = resolver
        self.attributes = dict(attributes or {})

    async def kube_config(self) -> ClientConfiguration:
        return await asyncio.to_thread(self.resolver.resolve, self.identity)

    def addon_context(self) -> dict[str, Any]:
        return {
            **self.attributes,
            "vendor": "gke",
            "cluster": self.identity.name,
            "location": self.identity.location,
            "project": self.identity.project,
        }

    def __str__(self) -> str:
        return f"gke:{self.identity}"

    def __repr__(self) -> str:
        return f"GKECluster({self.identity!r})"
