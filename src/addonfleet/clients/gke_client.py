"""GKE cluster-manager client."""

from google.api_core.exceptions import NotFound
from google.api_core.gapic_v1.client_info import ClientInfo
from google.cloud import container_v1

from addonfleet.auth.token_source import TokenSourceCredentials
from addonfleet.core.exceptions import ClusterLookupError
from addonfleet.interfaces.cloud_provider import ClusterManager
from addonfleet.interfaces.cloud_types import ClusterInfo
from addonfleet.interfaces.token_source import TokenSource
from addonfleet.utils.logging import get_logger

logger = get_logger(__name__)


class GKEClient(ClusterManager):
    """Google Kubernetes Engine client authorized by a TokenSource."""

    def __init__(
        self,
        token_source: TokenSource,
        user_agent: str,
        client: container_v1.ClusterManagerClient | None = None,
    ):
        """Initialize GKE client.

        Args:
            token_source: Source of bearer tokens for the API calls
            user_agent: User agent attached to every request
            client: Existing ClusterManagerClient (optional, overrides construction)
        """
        self.user_agent = user_agent
        self.client = client or container_v1.ClusterManagerClient(
            credentials=TokenSourceCredentials(token_source),
            client_info=ClientInfo(user_agent=user_agent),
        )
        logger.debug("gke_client_initialized", user_agent=user_agent)

    def get_cluster(self, name: str) -> ClusterInfo:
        """Get GKE cluster information.

        Args:
            name: Fully-qualified cluster resource name

        Returns:
            ClusterInfo with endpoint and base64 encoded CA certificate

        Raises:
            ClusterLookupError: If the cluster is missing or the call fails
        """
        try:
            logger.debug("getting_gke_cluster", name=name)
            cluster = self.client.get_cluster(name=name)
        except NotFound as e:
            logger.debug("gke_cluster_not_found", name=name)
            raise ClusterLookupError(f"GKE cluster not found: {name}") from e
        except Exception as e:
            logger.debug("gke_cluster_lookup_failed", name=name, error=str(e))
            raise ClusterLookupError(f"Failed to retrieve cluster info for {name}: {e}") from e

        logger.info("gke_cluster_retrieved", name=name)
        return ClusterInfo(
            endpoint=cluster.endpoint,
            ca_certificate=cluster.master_auth.cluster_ca_certificate,
            name=cluster.name,
            status=cluster.status.name,
            version=cluster.current_master_version,
        )
