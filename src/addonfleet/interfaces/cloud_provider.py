"""Cluster manager interface for GKE operations."""

from abc import ABC, abstractmethod

from addonfleet.interfaces.cloud_types import ClusterInfo


class ClusterManager(ABC):
    """Abstract interface for the cloud provider's cluster-management API.

    Implementations hide SDK specifics (google-api-core exceptions, protobuf
    messages) behind ``ClusterInfo``.
    """

    @abstractmethod
    def get_cluster(self, name: str) -> ClusterInfo:
        """Get a cluster by fully-qualified resource name.

        Args:
            name: ``projects/{project}/locations/{location}/clusters/{name}``

        Returns:
            ClusterInfo with endpoint and base64 encoded CA certificate

        Raises:
            ClusterLookupError: If the cluster is missing or the call fails
        """
