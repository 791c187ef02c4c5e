"""Metadata store interface for addon run records."""

from abc import ABC, abstractmethod
from typing import Any


class MetadataStore(ABC):
    """Persists per-addon metadata (last applied version, timestamps, owner).

    The store is scoped to one cluster and one namespace; records are keyed
    by addon name.
    """

    @abstractmethod
    def put(self, addon: str, data: dict[str, Any]) -> None:
        """Create or replace the record for ``addon``.

        Raises:
            MetadataStoreError: If the write fails
        """

    @abstractmethod
    def get(self, addon: str) -> dict[str, Any] | None:
        """Get the record for ``addon``, or None if absent.

        Raises:
            MetadataStoreError: If the read fails
        """

    @abstractmethod
    def delete(self, addon: str) -> bool:
        """Delete the record for ``addon``.

        Returns:
            True if a record was deleted, False if none existed

        Raises:
            MetadataStoreError: If the delete fails
        """

    @abstractmethod
    def list(self) -> dict[str, dict[str, Any]]:
        """All records, keyed by addon name.

        Raises:
            MetadataStoreError: If the listing fails
        """
