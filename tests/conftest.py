"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from typing import Any, TextIO

import pytest
import structlog

from addonfleet.clients.kubernetes_client import ClientConfiguration
from addonfleet.core.config import RunSettings
from addonfleet.core.models import ClusterIdentity, Command
from addonfleet.interfaces.cloud_types import BearerToken
from addonfleet.interfaces.runtime import (
    ClusterVisitor,
    KubernetesVendor,
    Runtime,
    RuntimeConfig,
    RuntimeFactory,
)
from addonfleet.interfaces.token_source import TokenSource

PEM = b"-----BEGIN CERTIFICATE-----\nMIIBfake\n-----END CERTIFICATE-----\n"


@pytest.fixture(autouse=True)
def reset_structlog():
    """Drop any structlog configuration a test installed."""
    yield
    structlog.reset_defaults()


# ==============================================================================
# Test doubles
# ==============================================================================


class StaticTokenSource(TokenSource):
    """TokenSource returning a fixed token and counting calls."""

    def __init__(self, value: str = "ya29.test-token"):
        self.value = value
        self.calls = 0

    def token(self) -> BearerToken:
        self.calls += 1
        return BearerToken(value=self.value)


class FakeVendor(KubernetesVendor):
    """Discovered cluster whose credentials resolve locally."""

    def __init__(
        self,
        name: str,
        credential_error: Exception | None = None,
        resolve_delay: float = 0.0,
    ):
        self.name = name
        self.credential_error = credential_error
        self.resolve_delay = resolve_delay
        self.kube_config_calls = 0
        self.client_configs: list[ClientConfiguration] = []

    async def kube_config(self) -> ClientConfiguration:
        self.kube_config_calls += 1
        if self.resolve_delay:
            await asyncio.sleep(self.resolve_delay)
        if self.credential_error is not None:
            raise self.credential_error
        config = ClientConfiguration(
            host=f"https://{self.name}.example",
            ca_data=PEM,
            token_source=StaticTokenSource(),
            user_agent="addonfleet/test",
        )
        self.client_configs.append(config)
        return config

    def addon_context(self) -> dict[str, Any]:
        return {"cluster": self.name}

    def __str__(self) -> str:
        return self.name


class FakeClustersRuntime(Runtime):
    """Clusters runtime yielding a fixed list of vendors."""

    def __init__(self, vendors: list[FakeVendor], load_error: Exception | None = None):
        self.vendors = vendors
        self.load_error = load_error
        self.loaded = False
        self.params: dict[str, str] | None = None
        self.visited: list[str] = []

    async def load(self) -> None:
        if self.load_error is not None:
            raise self.load_error
        self.loaded = True

    async def for_each_cluster(self, params: dict[str, str], visitor: ClusterVisitor) -> None:
        self.params = params
        for vendor in self.vendors:
            self.visited.append(vendor.name)
            await visitor(vendor)

    async def run(self, command: Command, addon_context: dict[str, Any]) -> None:
        raise NotImplementedError("clusters runtime does not run addons")


class FakeAddonsRuntime(Runtime):
    """Addons runtime for one cluster."""

    def __init__(
        self,
        config: RuntimeConfig,
        run_error: Exception | None = None,
        load_error: Exception | None = None,
        run_delay: float = 0.0,
    ):
        self.config = config
        self.run_error = run_error
        self.load_error = load_error
        self.run_delay = run_delay
        self.loaded = False
        self.runs: list[tuple[Command, dict[str, Any]]] = []

    async def load(self) -> None:
        if self.load_error is not None:
            raise self.load_error
        self.loaded = True

    async def for_each_cluster(self, params: dict[str, str], visitor: ClusterVisitor) -> None:
        raise NotImplementedError("addons runtime does not enumerate clusters")

    async def run(self, command: Command, addon_context: dict[str, Any]) -> None:
        self.runs.append((command, addon_context))
        if self.run_delay:
            await asyncio.sleep(self.run_delay)
        if self.run_error is not None:
            raise self.run_error


def cluster_name_for(config: RuntimeConfig) -> str:
    """Recover the FakeVendor name from a client configuration host."""
    assert config.client_config is not None
    return config.client_config.host.removeprefix("https://").removesuffix(".example")


class FakeRuntimeFactory(RuntimeFactory):
    """Runtime plugin double recording everything it builds."""

    def __init__(
        self,
        vendors: list[FakeVendor] | None = None,
        failing_clusters: tuple[str, ...] = (),
        clusters_load_error: Exception | None = None,
        clusters_init_error: Exception | None = None,
        addons_load_error: Exception | None = None,
        addons_init_error: Exception | None = None,
        run_delay: float = 0.0,
        tests_pass: bool = True,
        tests_error: Exception | None = None,
    ):
        self.vendors = vendors or []
        self.failing_clusters = failing_clusters
        self.clusters_load_error = clusters_load_error
        self.clusters_init_error = clusters_init_error
        self.addons_load_error = addons_load_error
        self.addons_init_error = addons_init_error
        self.run_delay = run_delay
        self.tests_pass = tests_pass
        self.tests_error = tests_error

        self.clusters_configs: list[RuntimeConfig] = []
        self.clusters_runtimes: list[FakeClustersRuntime] = []
        self.addons_runtimes: list[FakeAddonsRuntime] = []
        self.test_calls: list[str] = []

    def clusters_runtime(self, config: RuntimeConfig) -> Runtime:
        self.clusters_configs.append(config)
        if self.clusters_init_error is not None:
            raise self.clusters_init_error
        runtime = FakeClustersRuntime(self.vendors, load_error=self.clusters_load_error)
        self.clusters_runtimes.append(runtime)
        return runtime

    def addons_runtime(self, config: RuntimeConfig) -> Runtime:
        if self.addons_init_error is not None:
            raise self.addons_init_error
        name = cluster_name_for(config)
        run_error = RuntimeError(f"addon failed on {name}") if name in self.failing_clusters else None
        runtime = FakeAddonsRuntime(
            config,
            run_error=run_error,
            load_error=self.addons_load_error,
            run_delay=self.run_delay,
        )
        self.addons_runtimes.append(runtime)
        return runtime

    async def run_unit_tests(self, path: str, stdout: TextIO, stderr: TextIO) -> bool:
        self.test_calls.append(path)
        if self.tests_error is not None:
            raise self.tests_error
        return self.tests_pass

    @property
    def executed_clusters(self) -> list[str]:
        return [cluster_name_for(r.config) for r in self.addons_runtimes if r.runs]


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def make_vendor() -> type[FakeVendor]:
    """Provide the FakeVendor class."""
    return FakeVendor


@pytest.fixture
def make_runtime_factory() -> type[FakeRuntimeFactory]:
    """Provide the FakeRuntimeFactory class."""
    return FakeRuntimeFactory


@pytest.fixture
def sample_identity() -> ClusterIdentity:
    """Provide a sample GKE cluster identity."""
    return ClusterIdentity(name="prod", location="us-central1", project="acme")


@pytest.fixture
def token_source() -> StaticTokenSource:
    """Provide a static token source."""
    return StaticTokenSource()


@pytest.fixture
def dry_run_settings() -> RunSettings:
    """Settings for a dry run (no Vault, no metadata store)."""
    return RunSettings(dry_run=True, context="env=test")


@pytest.fixture
def live_settings() -> RunSettings:
    """Settings for a mutating run."""
    return RunSettings(
        vault_token="s.test-token",
        namespace="addons-meta",
        match_addons="^ingress",
        kube_diff=True,
    )


@pytest.fixture
def client_config(token_source: StaticTokenSource):
    """Provide a client configuration, cleaned up after the test."""
    config = ClientConfiguration(
        host="https://34.1.2.3",
        ca_data=PEM,
        token_source=token_source,
        user_agent="addonfleet/test",
    )
    yield config
    config.close()


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
