"""
AppStudio preview-mode installation.

Steps run strictly in order and the first failure aborts the rest. The only
exception is the OAuth redirect fixup, which logs its failures and carries on.
"""
import logging
from pathlib import Path
from typing import Optional

from appstudio_installer.bootstrap import BootstrapScript
from appstudio_installer.config import InstallationConfig
from appstudio_installer.environment import InstallationEnvironment
from appstudio_installer.kube import ClusterClient
from appstudio_installer.reconcile import FixupResult, OAuthRedirectFixup, QuaySecretProvisioner
from appstudio_installer.repository import InfraDeploymentsRepository


logger = logging.getLogger(__name__)


class InstallationController:
    """
    Installs AppStudio in preview mode onto the current cluster.

    Workflow:
    1. Clone infra-deployments and add the fork remote
    2. Project config into the bootstrap script's environment
    3. Run hack/bootstrap-cluster.sh preview --keycloak --toolchain
    4. Patch the SPI OAuth redirect URL (best-effort)
    5. Provision the quay pull secret
    """

    def __init__(
        self,
        config: InstallationConfig,
        cluster: Optional[ClusterClient],
        repository: Optional[InfraDeploymentsRepository] = None,
        environment: Optional[InstallationEnvironment] = None,
        script: Optional[BootstrapScript] = None
    ):
        self.config = config
        self.cluster = cluster
        self.repository = repository or InfraDeploymentsRepository(config)
        self.environment = environment or InstallationEnvironment(config)
        self.script = script or BootstrapScript()

    def install_preview(self) -> None:
        """
        Run the full preview installation.

        Raises:
            InstallationError: From the first fatal step
        """
        clone_dir = self.sync_repository()
        self.run_bootstrap(clone_dir)
        self.fix_oauth_redirect()
        self.provision_quay_secret()
        logger.info("AppStudio preview installation finished")

    def sync_repository(self) -> Path:
        return self.repository.sync()

    def run_bootstrap(self, clone_dir: Optional[Path] = None) -> None:
        """Run the bootstrap script with the projected environment."""
        if clone_dir is None:
            clone_dir = self.config.infra_deployments_clone_dir
        self.script.run(cwd=clone_dir, env=self.environment.child_environment())

    def fix_oauth_redirect(self) -> FixupResult:
        return OAuthRedirectFixup(self.cluster, self.config).apply()

    def provision_quay_secret(self) -> str:
        return QuaySecretProvisioner(self.cluster, self.config).provision()
