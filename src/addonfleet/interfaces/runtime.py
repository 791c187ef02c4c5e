"""Interfaces of the clusters/addons runtime plugin.

The runtime evaluates the entry file: in clusters mode it enumerates target
clusters, in addons mode it installs, removes or lists the addons configured
for one cluster. addonfleet only sequences these calls; it never interprets
the entry file itself.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from addonfleet.clients.kubernetes_client import ClientConfiguration
    from addonfleet.clients.vault_client import VaultClient
    from addonfleet.cloud.gke import CredentialResolver
    from addonfleet.core.config import CredentialSource
    from addonfleet.core.models import Command
    from addonfleet.interfaces.state_store import MetadataStore


@dataclass(frozen=True)
class RuntimeConfig:
    """Inputs for constructing a runtime.

    ``resolver`` is shared by every cluster of the run; the clusters runtime
    hands it to the vendors it yields. The addon-specific fields are only
    set when building the addons runtime for a single cluster.
    """

    entry_file: str
    credential_source: CredentialSource
    user_agent: str
    dry_run: bool = False
    kubeconfig_path: str | None = None
    resolver: CredentialResolver | None = None
    client_config: ClientConfiguration | None = None
    kube_diff: bool = False
    helm_base_dir: str | None = None
    addon_regex: re.Pattern[str] | None = None
    no_spin: bool = False
    secrets: VaultClient | None = None
    store: MetadataStore | None = None


class KubernetesVendor(ABC):
    """A cluster yielded by discovery."""

    @abstractmethod
    async def kube_config(self) -> ClientConfiguration:
        """Resolve the Kubernetes client configuration for this cluster.

        Raises:
            CredentialError: If credentials cannot be resolved
        """

    @abstractmethod
    def addon_context(self) -> dict[str, Any]:
        """Cluster attributes exposed to addon definitions."""


ClusterVisitor = Callable[[KubernetesVendor], Awaitable[None]]


class Runtime(ABC):
    """Evaluated entry file."""

    @abstractmethod
    async def load(self) -> None:
        """Load and evaluate the entry file."""

    @abstractmethod
    async def for_each_cluster(self, params: dict[str, str], visitor: ClusterVisitor) -> None:
        """Call ``visitor`` for each selected cluster, in order, one at a time.

        Exceptions raised by ``visitor`` must propagate unchanged.

        Args:
            params: Context parameters passed to the clusters function
            visitor: Coroutine function invoked per cluster
        """

    @abstractmethod
    async def run(self, command: Command, addon_context: dict[str, Any]) -> None:
        """Run an addons command against the runtime's cluster.

        Raises:
            Exception: If any addon fails
        """


class RuntimeFactory(ABC):
    """Entry point of a runtime plugin."""

    @abstractmethod
    def clusters_runtime(self, config: RuntimeConfig) -> Runtime:
        """Build the runtime that enumerates clusters."""

    @abstractmethod
    def addons_runtime(self, config: RuntimeConfig) -> Runtime:
        """Build the runtime that acts on one cluster's addons."""

    @abstractmethod
    async def run_unit_tests(self, path: str, stdout: TextIO, stderr: TextIO) -> bool:
        """Run the entry file unit tests found under ``path``.

        Returns:
            True if all tests passed

        Raises:
            Exception: If the test harness could not run
        """
