"""Execution orchestrator for multi-cluster addon runs."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TextIO, TypeVar

from addonfleet.adapters.configmap_store import ConfigMapStore
from addonfleet.clients.kubernetes_client import ClientConfiguration
from addonfleet.clients.vault_client import VaultClient
from addonfleet.cloud.gke import CredentialResolver
from addonfleet.core.config import RunSettings
from addonfleet.core.exceptions import (
    AddonFleetError,
    ClusterCredentialError,
    ConfigurationError,
    DiscoveryError,
    FatalRunError,
    RuntimeSetupError,
    TestRunError,
    UsageError,
    WorkloadError,
)
from addonfleet.core.models import Command, ExitStatus, RunOutcome, RunSummary
from addonfleet.interfaces.runtime import KubernetesVendor, Runtime, RuntimeConfig, RuntimeFactory
from addonfleet.interfaces.state_store import MetadataStore
from addonfleet.utils.logging import cluster_log_context, get_logger, log_error

logger = get_logger(__name__)

T = TypeVar("T")

SecretsClientFactory = Callable[[RunSettings], VaultClient]
MetadataStoreFactory = Callable[[Any, str], MetadataStore]


def vault_client_from_settings(settings: RunSettings) -> VaultClient:
    """Build the Vault client for a non-dry-run addons runtime.

    Raises:
        ConfigurationError: If no Vault token is configured
    """
    if not settings.vault_token:
        raise ConfigurationError("--vault-token or $VAULT_TOKEN must be set")
    return VaultClient(token=settings.vault_token, url=settings.vault_addr)


class ExecutionOrchestrator:
    """Sequences discovery, credential resolution and addon runs.

    Clusters are processed one at a time in discovery order. Failures of
    discovery, credential resolution or addons runtime setup stop the whole
    run; a failing addons command only marks that cluster as failed and the
    run moves on to the next cluster.
    """

    def __init__(
        self,
        settings: RunSettings,
        runtime_factory: RuntimeFactory,
        secrets_client_factory: SecretsClientFactory = vault_client_from_settings,
        store_factory: MetadataStoreFactory = ConfigMapStore,
        resolver: CredentialResolver | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ):
        """Initialize execution orchestrator.

        Args:
            settings: Process-wide settings
            runtime_factory: Runtime plugin building clusters/addons runtimes
            secrets_client_factory: Builds the secrets client from settings
            store_factory: Builds the metadata store from an API client and namespace
            resolver: Credential resolver shared by all clusters (built from
                settings when omitted)
            stdout: Stream for test runner output (defaults to sys.stdout)
            stderr: Stream for test runner errors (defaults to sys.stderr)
        """
        self.settings = settings
        self.runtime_factory = runtime_factory
        self._secrets_client_factory = secrets_client_factory
        self._store_factory = store_factory
        self.resolver = resolver or CredentialResolver(
            settings.credential_source, settings.user_agent
        )
        self._stdout = stdout or sys.stdout
        self._stderr = stderr or sys.stderr
        self._deadline: float | None = None
        self.summary = RunSummary()

    async def run(self, command: Command, path: str | None) -> ExitStatus:
        """Execute ``command`` and map every outcome to an exit status.

        Fatal errors are logged once here; nothing is raised.

        Args:
            command: Requested addons command
            path: Entry file, or test path for ``test``

        Returns:
            Process exit status
        """
        try:
            return await self.execute(command, path)
        except UsageError as e:
            log_error(logger, e, "usage_error")
            return ExitStatus.USAGE
        except AddonFleetError as e:
            log_error(logger, e, "run_aborted", command=command.value)
            return ExitStatus.FATAL

    async def execute(self, command: Command, path: str | None) -> ExitStatus:
        """Execute ``command``.

        Returns:
            SUCCESS, TESTS_FAILED or CLUSTER_ERRORS

        Raises:
            UsageError: If the entry file is missing
            ConfigurationError: If settings are incomplete for the command
            FatalRunError: If discovery, credentials or runtime setup fail
        """
        self._start_deadline()
        self.summary = RunSummary()

        if command is Command.TEST:
            return await self._run_unit_tests(path)

        if not path:
            raise UsageError("path to main entry file must be set")
        if not self.settings.dry_run and not self.settings.vault_token:
            raise ConfigurationError("--vault-token or $VAULT_TOKEN must be set")

        clusters = await self._load_clusters_runtime(path)

        async def visit(vendor: KubernetesVendor) -> None:
            await self._process_cluster(vendor, command, path)

        try:
            await clusters.for_each_cluster(self.settings.context_params, visit)
        except FatalRunError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Failed to iterate through clusters: {e}") from e

        return self._finalize(command)

    async def _run_unit_tests(self, path: str | None) -> ExitStatus:
        test_path = path or "."
        logger.info("running_unit_tests", path=test_path)
        try:
            passed = await self._bounded(
                self.runtime_factory.run_unit_tests(test_path, self._stdout, self._stderr)
            )
        except Exception as e:
            raise TestRunError(f"Failed to run tests in {test_path}: {e}") from e

        logger.info("unit_tests_completed", path=test_path, passed=passed)
        return ExitStatus.SUCCESS if passed else ExitStatus.TESTS_FAILED

    async def _load_clusters_runtime(self, entry_file: str) -> Runtime:
        config = RuntimeConfig(
            entry_file=entry_file,
            credential_source=self.settings.credential_source,
            user_agent=self.settings.user_agent,
            dry_run=self.settings.dry_run,
            kubeconfig_path=self.settings.kubeconfig,
            resolver=self.resolver,
        )
        try:
            clusters = self.runtime_factory.clusters_runtime(config)
        except Exception as e:
            raise DiscoveryError(f"Failed to initialize clusters runtime: {e}") from e

        try:
            await self._bounded(clusters.load())
        except Exception as e:
            raise DiscoveryError(f"Failed to load clusters runtime: {e}") from e

        logger.info("clusters_runtime_loaded", entry_file=entry_file)
        return clusters

    async def _process_cluster(
        self, vendor: KubernetesVendor, command: Command, entry_file: str
    ) -> None:
        label = str(vendor)
        strategy = self.settings.credential_source.strategy

        with cluster_log_context(label, command=command.value):
            try:
                client_config = await self._bounded(vendor.kube_config())
            except Exception as e:
                raise ClusterCredentialError(
                    f"Failed to build kube rest config for k8s vendor {label} "
                    f"using {strategy}: {e}"
                ) from e

            try:
                addons = self._build_addons_runtime(client_config, entry_file)
                try:
                    await self._bounded(addons.load())
                except Exception as e:
                    raise RuntimeSetupError(
                        f"Failed to load addons runtime for {label}: {e}"
                    ) from e

                await self._run_addons(addons, vendor, command, label)
            finally:
                client_config.close()

    def _build_addons_runtime(self, client_config: ClientConfiguration, entry_file: str) -> Runtime:
        secrets = None
        store = None
        try:
            if not self.settings.dry_run:
                secrets = self._secrets_client_factory(self.settings)
                store = self._store_factory(client_config.api_client(), self.settings.namespace)

            config = RuntimeConfig(
                entry_file=entry_file,
                credential_source=self.settings.credential_source,
                user_agent=self.settings.user_agent,
                dry_run=self.settings.dry_run,
                kubeconfig_path=self.settings.kubeconfig,
                resolver=self.resolver,
                client_config=client_config,
                kube_diff=self.settings.kube_diff,
                helm_base_dir=self.settings.helm_base_dir(entry_file),
                addon_regex=self.settings.addon_regex,
                no_spin=self.settings.no_spin,
                secrets=secrets,
                store=store,
            )
            return self.runtime_factory.addons_runtime(config)
        except Exception as e:
            raise RuntimeSetupError(f"Failed to initialize addons runtime: {e}") from e

    async def _run_addons(
        self, addons: Runtime, vendor: KubernetesVendor, command: Command, label: str
    ) -> None:
        try:
            await self._bounded(addons.run(command, vendor.addon_context()))
        except Exception as e:
            error = WorkloadError(f"Failed to {command.value} addons on {label}: {str(e) or repr(e)}")
            error.__cause__ = e
            log_error(logger, error, "addons_run_failed")
            self.summary.record(RunOutcome(cluster=label, succeeded=False, error=str(error)))
            return

        logger.info("addons_run_succeeded")
        self.summary.record(RunOutcome(cluster=label, succeeded=True))

    def _finalize(self, command: Command) -> ExitStatus:
        status = self.summary.exit_status
        log = logger.warning if self.summary.failed else logger.info
        log(
            "run_complete",
            command=command.value,
            attempted=self.summary.attempted,
            succeeded=self.summary.succeeded,
            failed=self.summary.failed,
            exit_status=int(status),
        )
        return status

    def _start_deadline(self) -> None:
        timeout = self.settings.timeout_seconds
        self._deadline = None if timeout is None else asyncio.get_running_loop().time() + timeout

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` within what is left of the run deadline.

        Raises:
            TimeoutError: If the deadline passes first
        """
        if self._deadline is None:
            return await awaitable
        remaining = self._deadline - asyncio.get_running_loop().time()
        return await asyncio.wait_for(awaitable, timeout=max(remaining, 0))
