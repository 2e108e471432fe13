"""
Exceptions raised by the installer.
"""
from typing import Optional


class InstallationError(Exception):
    """Base class for installation failures."""
    pass


class ConfigError(InstallationError):
    """Raised when configuration overrides are invalid."""
    pass


class ClusterConfigError(InstallationError):
    """Raised when the Kubernetes client cannot be configured."""
    pass


class RepositorySyncError(InstallationError):
    """Raised when the infra-deployments working copy cannot be prepared."""
    pass


class BootstrapScriptError(InstallationError):
    """Raised when the bootstrap script cannot start or exits non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class QuaySecretError(InstallationError):
    """Raised when the quay pull secret cannot be provisioned."""
    pass
