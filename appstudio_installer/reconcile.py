"""
Post-install cluster fixups.

QuaySecretProvisioner is fatal on any failure. OAuthRedirectFixup is
best-effort: client errors are logged and reported in the result, never raised.
"""
import base64
import binascii
import copy
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from appstudio_installer.config import (
    InstallationConfig,
    QUAY_SECRET_NAMESPACE,
    QUAY_SECRET_NAME,
    SPI_NAMESPACE,
    SPI_OAUTH_CONFIGMAP,
    SPI_OAUTH_DEPLOYMENT,
    RESTARTED_AT_ANNOTATION,
)
from appstudio_installer.errors import QuaySecretError
from appstudio_installer.kube import ClusterClient


logger = logging.getLogger(__name__)

DOCKER_CONFIG_JSON_TYPE = "kubernetes.io/dockerconfigjson"
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"
MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"


def decode_quay_token(token: str) -> bytes:
    """
    Decode the base64 docker config.json carried in QUAY_TOKEN.

    Raises:
        QuaySecretError: If the token is empty or not valid base64
    """
    if not token:
        raise QuaySecretError("failed to obtain quay token from 'QUAY_TOKEN' env; make sure the env exists")

    try:
        return base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as e:
        raise QuaySecretError(
            "failed to decode quay token. Make sure that QUAY_TOKEN env contain a base64 token"
        ) from e


def describe_api_error(error: Exception) -> str:
    """Status and reason for ApiException, the message for transport errors."""
    if isinstance(error, ApiException):
        return f"{error.status} {error.reason}"
    return f"{type(error).__name__}: {error}"


class QuaySecretProvisioner:
    """Get-or-create the quay namespace and get-or-create-or-update its pull secret."""

    def __init__(
        self,
        cluster: ClusterClient,
        config: InstallationConfig,
        namespace: str = QUAY_SECRET_NAMESPACE,
        secret_name: str = QUAY_SECRET_NAME
    ):
        self.cluster = cluster
        self.config = config
        self.namespace = namespace
        self.secret_name = secret_name

    def provision(self) -> str:
        """
        Ensure namespace and secret exist with the current token.

        The token is validated before any API call is made.

        Returns:
            "created" or "updated" depending on the secret's prior state

        Raises:
            QuaySecretError: On a bad token or any API or transport failure
        """
        payload = decode_quay_token(self.config.quay_token)

        self._ensure_namespace()
        return self._apply_secret(payload)

    def _ensure_namespace(self) -> None:
        core_v1 = self.cluster.core_v1
        try:
            core_v1.read_namespace(name=self.namespace)
            logger.debug(f"namespace {self.namespace} already exists")
            return
        except ApiException as e:
            if e.status != 404:
                raise QuaySecretError(
                    f"error when getting namespace {self.namespace} : {describe_api_error(e)}"
                ) from e
        except Exception as e:
            raise QuaySecretError(f"error when getting namespace {self.namespace} : {describe_api_error(e)}") from e

        try:
            core_v1.create_namespace(
                body=client.V1Namespace(metadata=client.V1ObjectMeta(name=self.namespace))
            )
        except Exception as e:
            raise QuaySecretError(f"error when creating namespace {self.namespace} : {describe_api_error(e)}") from e

        logger.info(f"created namespace {self.namespace}")

    def _apply_secret(self, payload: bytes) -> str:
        core_v1 = self.cluster.core_v1
        # V1Secret.data values travel base64-encoded
        data = {DOCKER_CONFIG_JSON_KEY: base64.b64encode(payload).decode('ascii')}

        try:
            secret = core_v1.read_namespaced_secret(name=self.secret_name, namespace=self.namespace)
        except ApiException as e:
            if e.status != 404:
                raise QuaySecretError(
                    f"error when getting secret {self.secret_name} : {describe_api_error(e)}"
                ) from e
            secret = None
        except Exception as e:
            raise QuaySecretError(f"error when getting secret {self.secret_name} : {describe_api_error(e)}") from e

        if secret is None:
            body = client.V1Secret(
                metadata=client.V1ObjectMeta(name=self.secret_name, namespace=self.namespace),
                type=DOCKER_CONFIG_JSON_TYPE,
                data=data
            )
            try:
                core_v1.create_namespaced_secret(namespace=self.namespace, body=body)
            except Exception as e:
                raise QuaySecretError(
                    f"error when creating secret {self.secret_name} : {describe_api_error(e)}"
                ) from e

            logger.info(f"created secret {self.namespace}/{self.secret_name}")
            return "created"

        secret.data = data
        try:
            core_v1.replace_namespaced_secret(name=self.secret_name, namespace=self.namespace, body=secret)
        except Exception as e:
            raise QuaySecretError(
                f"error when updating secret '{self.secret_name}' namespace: {describe_api_error(e)}"
            ) from e

        logger.info(f"updated secret {self.namespace}/{self.secret_name}")
        return "updated"


@dataclass
class FixupResult:
    """How far the OAuth redirect fixup got."""
    skipped: bool = False
    configmap_patched: bool = False
    deployment_taken_down: bool = False
    error: Optional[str] = None


class OAuthRedirectFixup:
    """
    Points the SPI OAuth service at the redirect proxy.

    Patches OAUTH_REDIRECT_PROXY_URL into the service's configmap, then takes
    the deployment down (restart annotation + zero replicas) so it picks the
    value up when scaled back.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        config: InstallationConfig,
        namespace: str = SPI_NAMESPACE,
        configmap_name: str = SPI_OAUTH_CONFIGMAP,
        deployment_name: str = SPI_OAUTH_DEPLOYMENT
    ):
        self.cluster = cluster
        self.config = config
        self.namespace = namespace
        self.configmap_name = configmap_name
        self.deployment_name = deployment_name

    def apply(self) -> FixupResult:
        """
        Run the fixup.

        Best-effort delivery:
        - Every client error is caught and logged
        - Never raises
        - Returns immediately if no redirect URL is configured
        """
        redirect_url = self.config.oauth_redirect_proxy_url
        if not redirect_url:
            logger.error("OAUTH_REDIRECT_PROXY_URL not set: not updating spi configuration")
            return FixupResult(skipped=True)

        result = FixupResult()
        try:
            self.cluster.core_v1.patch_namespaced_config_map(
                name=self.configmap_name,
                namespace=self.namespace,
                body={"data": {"OAUTH_REDIRECT_PROXY_URL": redirect_url}},
                _content_type=MERGE_PATCH_CONTENT_TYPE
            )
        except Exception as e:
            return self._failed(result, f"patching configmap {self.namespace}/{self.configmap_name}", e)

        result.configmap_patched = True
        logger.info(f"patched configmap {self.namespace}/{self.configmap_name}")

        return self.take_down_deployment(result)

    def take_down_deployment(self, result: Optional[FixupResult] = None) -> FixupResult:
        """
        Stamp the restart annotation and scale the deployment to zero.

        Nothing here scales it back up.
        """
        if result is None:
            result = FixupResult()

        apps_v1 = self.cluster.apps_v1
        try:
            deployment = apps_v1.read_namespaced_deployment(name=self.deployment_name, namespace=self.namespace)
        except Exception as e:
            return self._failed(result, f"getting deployment {self.namespace}/{self.deployment_name}", e)

        updated = copy.deepcopy(deployment)
        annotations = dict(updated.metadata.annotations or {})
        annotations[RESTARTED_AT_ANNOTATION] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        updated.metadata.annotations = annotations
        updated.spec.replicas = 0

        try:
            apps_v1.replace_namespaced_deployment(
                name=self.deployment_name,
                namespace=self.namespace,
                body=updated
            )
        except Exception as e:
            return self._failed(result, f"updating deployment {self.namespace}/{self.deployment_name}", e)

        result.deployment_taken_down = True
        logger.info(f"scaled deployment {self.namespace}/{self.deployment_name} to 0 replicas")
        return result

    def _failed(self, result: FixupResult, action: str, error: Exception) -> FixupResult:
        result.error = f"error {action}: {describe_api_error(error)}"
        logger.error(result.error)
        return result
