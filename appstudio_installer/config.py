"""
Installation configuration.

Values are read once from environment variables (with defaults) and may be
overridden from a YAML file. The resulting config is immutable.
"""
import os
import yaml
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from appstudio_installer.errors import ConfigError


DEFAULT_TMP_DIR = "tmp"
DEFAULT_INFRA_DEPLOYMENTS_BRANCH = "main"
DEFAULT_INFRA_DEPLOYMENTS_GH_ORG = "redhat-appstudio"
DEFAULT_LOCAL_FORK_NAME = "qe"
DEFAULT_LOCAL_FORK_ORGANIZATION = "redhat-appstudio-qe"
DEFAULT_E2E_QUAY_ORG = "redhat-appstudio-qe"
DEFAULT_IMAGE_TAG_EXPIRATION = "6h"

IMAGE_TAG_EXPIRATION_ENV = "IMAGE_TAG_EXPIRATION"

INFRA_DEPLOYMENTS_REPO = "infra-deployments"
BOOTSTRAP_SCRIPT = "hack/bootstrap-cluster.sh"
PREVIEW_INSTALL_ARGS = ("preview", "--keycloak", "--toolchain")

# Cluster objects touched after the bootstrap script
QUAY_SECRET_NAMESPACE = "quay-secret-ns"
QUAY_SECRET_NAME = "quay-secret"
SPI_NAMESPACE = "spi-system"
SPI_OAUTH_CONFIGMAP = "spi-oauth-service-environment-config"
SPI_OAUTH_DEPLOYMENT = "spi-oauth-service"
RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"


@dataclass(frozen=True)
class InstallationConfig:
    """Everything the installer needs, fixed at construction."""
    cwd: Path
    tmp_dir: str = DEFAULT_TMP_DIR
    infra_deployments_branch: str = DEFAULT_INFRA_DEPLOYMENTS_BRANCH
    infra_deployments_org: str = DEFAULT_INFRA_DEPLOYMENTS_GH_ORG
    local_fork_name: str = DEFAULT_LOCAL_FORK_NAME
    local_fork_org: str = DEFAULT_LOCAL_FORK_ORGANIZATION
    quay_token: str = ""
    default_quay_org: str = DEFAULT_E2E_QUAY_ORG
    default_quay_org_token: str = ""
    default_image_tag_expiration: str = DEFAULT_IMAGE_TAG_EXPIRATION
    github_token: str = ""
    pac_github_app_id: str = ""
    pac_github_app_private_key: str = ""
    oauth_redirect_proxy_url: str = ""

    @classmethod
    def from_env(
        cls,
        cwd: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None
    ) -> 'InstallationConfig':
        """
        Load configuration from environment variables.

        Args:
            cwd: Base directory for the tmp dir (default: process cwd)
            overrides: Field values applied on top of the environment

        Returns:
            InstallationConfig instance

        Raises:
            ConfigError: If overrides name unknown fields
        """
        config = cls(
            cwd=Path(cwd) if cwd is not None else Path.cwd(),
            infra_deployments_branch=os.getenv("INFRA_DEPLOYMENTS_BRANCH", DEFAULT_INFRA_DEPLOYMENTS_BRANCH),
            infra_deployments_org=os.getenv("INFRA_DEPLOYMENTS_ORG", DEFAULT_INFRA_DEPLOYMENTS_GH_ORG),
            local_fork_org=os.getenv("MY_GITHUB_ORG", DEFAULT_LOCAL_FORK_ORGANIZATION),
            quay_token=os.getenv("QUAY_TOKEN", ""),
            default_quay_org=os.getenv("DEFAULT_QUAY_ORG", DEFAULT_E2E_QUAY_ORG),
            default_quay_org_token=os.getenv("DEFAULT_QUAY_ORG_TOKEN", ""),
            default_image_tag_expiration=os.getenv(IMAGE_TAG_EXPIRATION_ENV, DEFAULT_IMAGE_TAG_EXPIRATION),
            github_token=os.getenv("GITHUB_TOKEN", ""),
            pac_github_app_id=os.getenv("E2E_PAC_GITHUB_APP_ID", ""),
            pac_github_app_private_key=os.getenv("E2E_PAC_GITHUB_APP_PRIVATE_KEY", ""),
            oauth_redirect_proxy_url=os.getenv("OAUTH_REDIRECT_PROXY_URL", ""),
        )

        if overrides:
            config = config.with_overrides(overrides)

        return config

    @classmethod
    def from_yaml(cls, yaml_path: Path, cwd: Optional[Path] = None) -> 'InstallationConfig':
        """
        Load configuration from environment, then apply a YAML override file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ConfigError: If the document is not valid YAML, not a mapping or has unknown keys
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Installation config not found: {yaml_path}")

        with open(yaml_path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in installation config {yaml_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Installation config {yaml_path} must be a mapping")

        return cls.from_env(cwd=cwd, overrides=data)

    def with_overrides(self, overrides: Dict[str, Any]) -> 'InstallationConfig':
        """Return a copy with the given fields replaced."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown config fields: {', '.join(unknown)}")

        # YAML nulls (`key:`) mean "unset", like an empty env var
        values = {
            key: "" if value is None else str(value)
            for key, value in overrides.items() if key != 'cwd'
        }
        if overrides.get('cwd') is not None:
            values['cwd'] = Path(overrides['cwd'])
        return replace(self, **values)

    @property
    def infra_deployments_clone_dir(self) -> Path:
        """Clone target: <cwd>/<tmp_dir>/infra-deployments."""
        return self.cwd / self.tmp_dir / INFRA_DEPLOYMENTS_REPO

    @property
    def infra_deployments_url(self) -> str:
        return f"https://github.com/{self.infra_deployments_org}/{INFRA_DEPLOYMENTS_REPO}"

    @property
    def infra_deployments_ref(self) -> str:
        return f"refs/heads/{self.infra_deployments_branch}"

    @property
    def fork_remote_url(self) -> str:
        return f"https://github.com/{self.local_fork_org}/{INFRA_DEPLOYMENTS_REPO}.git"
