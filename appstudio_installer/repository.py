"""
infra-deployments working copy management.

Each sync throws away any previous clone and starts from a fresh checkout,
then wires up the fork remote the bootstrap script pushes test branches to.
"""
import logging
import shutil
import subprocess
from pathlib import Path

from appstudio_installer.config import InstallationConfig
from appstudio_installer.errors import RepositorySyncError


logger = logging.getLogger(__name__)


class InfraDeploymentsRepository:
    """Clones infra-deployments and adds the fork remote."""

    def __init__(self, config: InstallationConfig):
        self.config = config
        self.clone_dir: Path = config.infra_deployments_clone_dir

    def sync(self) -> Path:
        """
        Produce a clean checkout with the fork remote attached.

        Returns:
            Path to the clone directory

        Raises:
            RepositorySyncError: If removal, clone or remote creation fails
        """
        self.remove_existing()
        self.clone()
        self.add_fork_remote()
        return self.clone_dir

    def remove_existing(self) -> None:
        """Delete the clone directory if it is already there."""
        if not self.clone_dir.is_dir():
            return

        logger.warning(f"folder {self.clone_dir} already exists... removing")
        try:
            shutil.rmtree(self.clone_dir)
        except OSError as e:
            raise RepositorySyncError(f"error removing {self.clone_dir} folder: {e}") from e

    def clone(self) -> None:
        """Clone the configured branch into the clone directory."""
        url = self.config.infra_deployments_url
        logger.info(f"cloning '{url}' with git ref '{self.config.infra_deployments_ref}'")

        self.clone_dir.parent.mkdir(parents=True, exist_ok=True)
        result = self._git(
            ['git', 'clone', '--branch', self.config.infra_deployments_branch, url, str(self.clone_dir)],
            cwd=self.clone_dir.parent
        )

        if result.returncode != 0:
            raise RepositorySyncError(
                f"Failed to clone {url} ({self.config.infra_deployments_ref}): {result.stderr.strip()}"
            )

    def add_fork_remote(self) -> None:
        """Add the fork remote, e.g. qe -> https://github.com/<fork-org>/infra-deployments.git."""
        name = self.config.local_fork_name
        url = self.config.fork_remote_url

        result = self._git(['git', 'remote', 'add', name, url], cwd=self.clone_dir)
        if result.returncode != 0:
            raise RepositorySyncError(f"Failed to add remote '{name}' ({url}): {result.stderr.strip()}")

        logger.info(f"added remote '{name}' -> {url}")

    def _git(self, command, cwd: Path) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(command, cwd=cwd, capture_output=True, text=True)
        except OSError as e:
            raise RepositorySyncError(f"Failed to run {command[0]} {command[1]}: {e}") from e
