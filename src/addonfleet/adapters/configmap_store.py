"""ConfigMap-backed metadata store implementing MetadataStore."""

import json
from typing import Any

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from addonfleet.core.exceptions import MetadataStoreError
from addonfleet.interfaces.state_store import MetadataStore
from addonfleet.utils.logging import get_logger

logger = get_logger(__name__)

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "addonfleet"
ADDON_ANNOTATION = "addonfleet.io/addon"
DATA_KEY = "metadata.json"


class ConfigMapStore(MetadataStore):
    """Stores one ConfigMap per addon in a fixed namespace.

    ConfigMaps are named ``addonfleet-<addon>`` and labelled so that
    ``list`` only sees records this store wrote.
    """

    def __init__(self, api_client: client.ApiClient, namespace: str):
        """Initialize the store.

        Args:
            api_client: Kubernetes API client for the target cluster
            namespace: Namespace holding the records
        """
        self.namespace = namespace
        self.core_v1 = client.CoreV1Api(api_client)
        logger.debug("configmap_store_initialized", namespace=namespace)

    @staticmethod
    def _name(addon: str) -> str:
        return f"addonfleet-{addon}".lower().replace("_", "-")

    def _body(self, addon: str, data: dict[str, Any]) -> client.V1ConfigMap:
        return client.V1ConfigMap(
            metadata=client.V1ObjectMeta(
                name=self._name(addon),
                namespace=self.namespace,
                labels={MANAGED_BY_LABEL: MANAGED_BY},
                annotations={ADDON_ANNOTATION: addon},
            ),
            data={DATA_KEY: json.dumps(data, sort_keys=True, default=str)},
        )

    def put(self, addon: str, data: dict[str, Any]) -> None:
        """Create or replace the record for ``addon``.

        Raises:
            MetadataStoreError: If the write fails
        """
        name = self._name(addon)
        body = self._body(addon, data)
        try:
            try:
                self.core_v1.replace_namespaced_config_map(name, self.namespace, body)
                logger.info("metadata_updated", addon=addon, namespace=self.namespace)
            except ApiException as e:
                if e.status != 404:
                    raise
                self.core_v1.create_namespaced_config_map(self.namespace, body)
                logger.info("metadata_created", addon=addon, namespace=self.namespace)
        except ApiException as e:
            logger.error("metadata_put_failed", addon=addon, status=e.status, reason=e.reason)
            raise MetadataStoreError(f"Failed to store metadata for {addon}: {e.reason}") from e

    def get(self, addon: str) -> dict[str, Any] | None:
        """Get the record for ``addon``, or None if absent.

        Raises:
            MetadataStoreError: If the read fails
        """
        try:
            config_map = self.core_v1.read_namespaced_config_map(self._name(addon), self.namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            logger.error("metadata_get_failed", addon=addon, status=e.status, reason=e.reason)
            raise MetadataStoreError(f"Failed to read metadata for {addon}: {e.reason}") from e

        return self._decode(addon, config_map)

    def delete(self, addon: str) -> bool:
        """Delete the record for ``addon``.

        Raises:
            MetadataStoreError: If the delete fails
        """
        try:
            self.core_v1.delete_namespaced_config_map(self._name(addon), self.namespace)
        except ApiException as e:
            if e.status == 404:
                return False
            logger.error("metadata_delete_failed", addon=addon, status=e.status, reason=e.reason)
            raise MetadataStoreError(f"Failed to delete metadata for {addon}: {e.reason}") from e

        logger.info("metadata_deleted", addon=addon, namespace=self.namespace)
        return True

    def list(self) -> dict[str, dict[str, Any]]:
        """All records, keyed by addon name.

        Raises:
            MetadataStoreError: If the listing fails
        """
        try:
            response = self.core_v1.list_namespaced_config_map(
                self.namespace, label_selector=f"{MANAGED_BY_LABEL}={MANAGED_BY}"
            )
        except ApiException as e:
            logger.error("metadata_list_failed", status=e.status, reason=e.reason)
            raise MetadataStoreError(f"Failed to list metadata: {e.reason}") from e

        records = {}
        for config_map in response.items:
            annotations = config_map.metadata.annotations or {}
            addon = annotations.get(ADDON_ANNOTATION, config_map.metadata.name)
            records[addon] = self._decode(addon, config_map)
        return records

    @staticmethod
    def _decode(addon: str, config_map: client.V1ConfigMap) -> dict[str, Any]:
        raw = (config_map.data or {}).get(DATA_KEY, "{}")
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise MetadataStoreError(f"Corrupt metadata record for {addon}: {e}") from e
