"""Kubernetes client configuration for a resolved cluster."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

from kubernetes import client

from addonfleet.interfaces.token_source import TokenSource
from addonfleet.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ClientConfiguration:
    """Connection parameters for one cluster's API server.

    Every outbound Kubernetes request asks ``token_source`` for a current
    bearer token, so the configuration stays usable for as long as the
    token source can refresh.
    """

    host: str
    ca_data: bytes  # PEM
    token_source: TokenSource
    user_agent: str
    _ca_file: str | None = field(default=None, init=False, repr=False)

    def bearer_token(self) -> str:
        """Current bearer token from the token source."""
        return self.token_source.token().value

    def kubernetes_configuration(self) -> client.Configuration:
        """Build a kubernetes-client Configuration for this cluster."""
        configuration = client.Configuration()
        configuration.host = self.host
        configuration.verify_ssl = True
        configuration.ssl_ca_cert = self._ca_cert_path()
        # auth_settings() only emits the header when the key is present;
        # the hook then replaces it with a current token on every request
        configuration.api_key["authorization"] = self.bearer_token()
        configuration.api_key_prefix["authorization"] = "Bearer"
        configuration.refresh_api_key_hook = self._inject_token
        return configuration

    def api_client(self) -> client.ApiClient:
        """Build an ApiClient (the clientset root) for this cluster."""
        api_client = client.ApiClient(self.kubernetes_configuration())
        api_client.user_agent = self.user_agent
        logger.debug("k8s_api_client_created", host=self.host)
        return api_client

    def close(self) -> None:
        """Remove the CA file materialised for the kubernetes client."""
        if self._ca_file is not None:
            Path(self._ca_file).unlink(missing_ok=True)
            self._ca_file = None

    def __enter__(self) -> ClientConfiguration:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _inject_token(self, configuration: client.Configuration) -> None:
        configuration.api_key["authorization"] = self.bearer_token()

    def _ca_cert_path(self) -> str:
        # kubernetes-client only accepts the CA bundle as a file path
        if self._ca_file is None:
            with tempfile.NamedTemporaryFile(
                prefix="addonfleet-ca-", suffix=".crt", delete=False
            ) as f:
                f.write(self.ca_data)
                self._ca_file = f.name
        return self._ca_file
