"""
Environment handed to the infra-deployments bootstrap script.
"""
import os
import random
import string
from typing import Dict, Mapping, Optional

from appstudio_installer.config import InstallationConfig


TEST_BRANCH_ID_LENGTH = 4

SECRET_VARIABLES = (
    "MY_GITHUB_TOKEN",
    "QUAY_TOKEN",
    "IMAGE_CONTROLLER_QUAY_TOKEN",
    "PAC_GITHUB_APP_PRIVATE_KEY",
)


def generate_test_branch_id(length: int = TEST_BRANCH_ID_LENGTH) -> str:
    """Random lowercase identifier used to name test branches on the fork."""
    return ''.join(random.choices(string.ascii_lowercase, k=length))


class InstallationEnvironment:
    """
    Maps installation config onto the variables the bootstrap script reads.

    The test branch id is drawn once per instance, so every projection from
    the same object yields identical values.
    """

    def __init__(self, config: InstallationConfig, test_branch_id: Optional[str] = None):
        self.config = config
        self.test_branch_id = test_branch_id or generate_test_branch_id()

    def variables(self) -> Dict[str, str]:
        config = self.config
        return {
            "MY_GITHUB_ORG": config.local_fork_org,
            "MY_GITHUB_TOKEN": config.github_token,
            "MY_GIT_FORK_REMOTE": config.local_fork_name,
            "TEST_BRANCH_ID": self.test_branch_id,
            "QUAY_TOKEN": config.quay_token,
            "IMAGE_CONTROLLER_QUAY_ORG": config.default_quay_org,
            "IMAGE_CONTROLLER_QUAY_TOKEN": config.default_quay_org_token,
            "BUILD_SERVICE_IMAGE_TAG_EXPIRATION": config.default_image_tag_expiration,
            "PAC_GITHUB_APP_ID": config.pac_github_app_id,
            "PAC_GITHUB_APP_PRIVATE_KEY": config.pac_github_app_private_key,
        }

    def child_environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build the full environment for the child process.

        Args:
            base: Environment to start from (default: os.environ). Not mutated.

        Returns:
            New dict with the projected variables layered over base
        """
        env = dict(os.environ if base is None else base)
        env.update(self.variables())
        return env

    def masked(self) -> Dict[str, str]:
        """Projected variables with secret values redacted."""
        masked = {}
        for name, value in self.variables().items():
            if name in SECRET_VARIABLES and value:
                masked[name] = "****"
            else:
                masked[name] = value
        return masked
