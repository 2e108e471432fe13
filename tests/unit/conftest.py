"""
Pytest configuration for unit tests.

Clears installer-related environment variables so config defaults are
predictable regardless of the developer's shell.
"""
import pytest
from unittest.mock import Mock


INSTALLER_ENV_VARS = [
    "INFRA_DEPLOYMENTS_BRANCH",
    "INFRA_DEPLOYMENTS_ORG",
    "MY_GITHUB_ORG",
    "QUAY_TOKEN",
    "DEFAULT_QUAY_ORG",
    "DEFAULT_QUAY_ORG_TOKEN",
    "IMAGE_TAG_EXPIRATION",
    "GITHUB_TOKEN",
    "E2E_PAC_GITHUB_APP_ID",
    "E2E_PAC_GITHUB_APP_PRIVATE_KEY",
    "OAUTH_REDIRECT_PROXY_URL",
]

# A base64-encoded docker config.json
QUAY_TOKEN = "eyJhIjoxfQ=="


@pytest.fixture(autouse=True)
def clean_installer_env(monkeypatch):
    """Remove installer env vars for every test."""
    for name in INSTALLER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def quay_token():
    return QUAY_TOKEN


@pytest.fixture
def cluster():
    """Stand-in for ClusterClient with mocked typed APIs."""
    mock_cluster = Mock()
    mock_cluster.core_v1 = Mock()
    mock_cluster.apps_v1 = Mock()
    return mock_cluster
