"""Custom exceptions for addonfleet."""


class AddonFleetError(Exception):
    """Base exception for all addonfleet errors."""


class ConfigurationError(AddonFleetError):
    """Configuration-related errors."""


class UsageError(AddonFleetError):
    """Command line was malformed."""


class CredentialError(AddonFleetError):
    """Kubernetes credentials for a cluster could not be resolved."""


class CredentialFileError(CredentialError):
    """Service account key file could not be read."""


class CredentialParseError(CredentialError):
    """Service account key file is not a valid credential bundle."""


class CredentialSourceError(CredentialError):
    """Environment provides no default application credential."""


class ClusterLookupError(CredentialError):
    """Cluster metadata could not be retrieved from the GKE API."""


class CertificateDecodeError(CredentialError):
    """Cluster CA certificate returned by the GKE API is not valid base64."""


class FatalRunError(AddonFleetError):
    """Error that stops the whole run."""


class DiscoveryError(FatalRunError):
    """Clusters runtime could not be loaded or iterated."""


class ClusterCredentialError(FatalRunError):
    """Kubernetes client configuration could not be built for a cluster."""


class RuntimeSetupError(FatalRunError):
    """Addons runtime could not be constructed or loaded for a cluster."""


class TestRunError(FatalRunError):
    """Unit test harness itself failed to run."""

    __test__ = False


class WorkloadError(AddonFleetError):
    """Addons command failed against one cluster."""


class SecretsError(AddonFleetError):
    """Vault operation failed."""


class MetadataStoreError(AddonFleetError):
    """Metadata persistence in Kubernetes failed."""
