"""addonfleet.

Resolve GKE credentials and run addon workloads across a fleet of Kubernetes clusters.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
