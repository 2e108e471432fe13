"""
Kubernetes API access for post-install fixups.
"""
import logging
from typing import Optional

from kubernetes import client, config

from appstudio_installer.errors import ClusterConfigError


logger = logging.getLogger(__name__)


class ClusterClient:
    """
    Holds the typed API clients the installer needs.

    Uses in-cluster service account config when in_cluster is set,
    kubeconfig (KUBECONFIG or ~/.kube/config) otherwise.
    """

    def __init__(self, in_cluster: bool = False, context: Optional[str] = None):
        """
        Initialize Kubernetes clients.

        Args:
            in_cluster: Whether running inside a pod
            context: kubeconfig context to use (default: current context)

        Raises:
            ClusterConfigError: If no usable configuration is found
        """
        try:
            if in_cluster:
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes configuration")
            else:
                config.load_kube_config(context=context)
                logger.info(f"Loaded kubeconfig (context: {context or 'current'})")
        except config.ConfigException as e:
            raise ClusterConfigError(f"Cannot load Kubernetes configuration: {e}") from e

        self.core_v1 = client.CoreV1Api()
        self.apps_v1 = client.AppsV1Api()
