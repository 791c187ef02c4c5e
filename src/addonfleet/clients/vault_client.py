"""Vault client handed to the addons runtime for secret lookups."""

from typing import Any

import hvac
import requests
from hvac.exceptions import InvalidPath, VaultError

from addonfleet.core.exceptions import SecretsError
from addonfleet.utils.logging import get_logger

logger = get_logger(__name__)


class VaultClient:
    """HashiCorp Vault KV client."""

    def __init__(
        self,
        token: str,
        url: str | None = None,
        mount_point: str = "secret",
        client: hvac.Client | None = None,
    ):
        """Initialize Vault client.

        Args:
            token: Vault token obtained during authentication
            url: Vault address (defaults to $VAULT_ADDR)
            mount_point: KV v2 secrets engine mount
            client: Existing hvac client (optional, overrides construction)
        """
        self.mount_point = mount_point
        self.client = client or hvac.Client(url=url, token=token)
        logger.debug("vault_client_initialized", url=self.client.url, mount_point=mount_point)

    def get_secret(self, path: str) -> dict[str, Any]:
        """Read the latest version of a KV v2 secret.

        Args:
            path: Secret path relative to the mount point

        Returns:
            Secret data

        Raises:
            SecretsError: If the secret cannot be read
        """
        try:
            logger.debug("getting_secret", path=path)
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path, mount_point=self.mount_point, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            logger.error("secret_not_found", path=path)
            raise SecretsError(f"Secret not found: {path}") from e
        except (VaultError, requests.RequestException) as e:
            logger.error("secret_retrieval_failed", path=path, error=str(e))
            raise SecretsError(f"Failed to retrieve secret {path}: {e}") from e

        logger.info("secret_retrieved", path=path)
        return response["data"]["data"]

    def get_secret_value(self, path: str, key: str) -> str:
        """Read one key of a KV v2 secret.

        Raises:
            SecretsError: If the secret or key is missing
        """
        data = self.get_secret(path)
        if key not in data:
            raise SecretsError(f"Key {key!r} not found in secret {path}")
        return str(data[key])
