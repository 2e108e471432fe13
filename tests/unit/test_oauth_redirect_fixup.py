"""
Unit tests for the best-effort SPI OAuth redirect fixup.
"""
import pytest
from datetime import datetime
from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError, ProtocolError

from appstudio_installer.config import InstallationConfig
from appstudio_installer.reconcile import OAuthRedirectFixup


REDIRECT_URL = "https://oauth-proxy.example.com/callback"


def make_deployment(annotations=None, replicas=1):
    return client.V1Deployment(
        metadata=client.V1ObjectMeta(
            name="spi-oauth-service",
            namespace="spi-system",
            annotations=annotations
        ),
        spec=client.V1DeploymentSpec(
            replicas=replicas,
            selector=client.V1LabelSelector(match_labels={"app": "spi-oauth"}),
            template=client.V1PodTemplateSpec()
        )
    )


class TestOAuthRedirectFixup:
    """Test configmap patch and deployment take-down."""

    def make_fixup(self, cluster, tmp_path, url=REDIRECT_URL):
        config = InstallationConfig.from_env(cwd=tmp_path, overrides={'oauth_redirect_proxy_url': url})
        return OAuthRedirectFixup(cluster, config)

    def test_unset_url_is_noop(self, cluster, tmp_path):
        """No redirect URL: zero cluster calls, no error."""
        fixup = OAuthRedirectFixup(cluster, InstallationConfig.from_env(cwd=tmp_path))

        result = fixup.apply()

        assert result.skipped is True
        assert result.error is None
        assert cluster.core_v1.method_calls == []
        assert cluster.apps_v1.method_calls == []

    def test_patches_configmap_and_takes_down_deployment(self, cluster, tmp_path):
        original = make_deployment(annotations={"owner": "spi"}, replicas=2)
        cluster.apps_v1.read_namespaced_deployment.return_value = original
        fixup = self.make_fixup(cluster, tmp_path)

        result = fixup.apply()

        patch_args = cluster.core_v1.patch_namespaced_config_map.call_args[1]
        assert patch_args['name'] == "spi-oauth-service-environment-config"
        assert patch_args['namespace'] == "spi-system"
        assert patch_args['body'] == {"data": {"OAUTH_REDIRECT_PROXY_URL": REDIRECT_URL}}
        assert patch_args['_content_type'] == "application/merge-patch+json"

        replace_args = cluster.apps_v1.replace_namespaced_deployment.call_args[1]
        assert replace_args['name'] == "spi-oauth-service"
        assert replace_args['namespace'] == "spi-system"
        updated = replace_args['body']
        assert updated.spec.replicas == 0
        assert updated.metadata.annotations["owner"] == "spi"
        restarted_at = updated.metadata.annotations["kubectl.kubernetes.io/restartedAt"]
        assert datetime.strptime(restarted_at, "%Y-%m-%dT%H:%M:%SZ")

        # the fetched object is copied, not mutated
        assert original.spec.replicas == 2
        assert "kubectl.kubernetes.io/restartedAt" not in original.metadata.annotations

        assert result.configmap_patched is True
        assert result.deployment_taken_down is True
        assert result.error is None

    def test_deployment_without_annotations(self, cluster, tmp_path):
        cluster.apps_v1.read_namespaced_deployment.return_value = make_deployment(annotations=None)
        fixup = self.make_fixup(cluster, tmp_path)

        fixup.apply()

        updated = cluster.apps_v1.replace_namespaced_deployment.call_args[1]['body']
        assert list(updated.metadata.annotations) == ["kubectl.kubernetes.io/restartedAt"]

    def test_configmap_patch_failure_logged(self, cluster, tmp_path, caplog):
        cluster.core_v1.patch_namespaced_config_map.side_effect = ApiException(status=404, reason="Not Found")
        fixup = self.make_fixup(cluster, tmp_path)

        result = fixup.apply()

        assert result.configmap_patched is False
        assert "404" in result.error
        cluster.apps_v1.read_namespaced_deployment.assert_not_called()
        assert "spi-oauth-service-environment-config" in caplog.text

    def test_deployment_fetch_failure_not_raised(self, cluster, tmp_path, caplog):
        """Patch succeeds, fetch fails: no update, no exception."""
        cluster.apps_v1.read_namespaced_deployment.side_effect = ApiException(status=404, reason="Not Found")
        fixup = self.make_fixup(cluster, tmp_path)

        result = fixup.apply()

        assert cluster.core_v1.patch_namespaced_config_map.called
        cluster.apps_v1.replace_namespaced_deployment.assert_not_called()
        assert result.configmap_patched is True
        assert result.deployment_taken_down is False
        assert "getting deployment spi-system/spi-oauth-service" in result.error
        assert "getting deployment" in caplog.text

    def test_deployment_update_failure_not_raised(self, cluster, tmp_path):
        cluster.apps_v1.read_namespaced_deployment.return_value = make_deployment()
        cluster.apps_v1.replace_namespaced_deployment.side_effect = ApiException(status=409, reason="Conflict")
        fixup = self.make_fixup(cluster, tmp_path)

        result = fixup.apply()

        assert result.deployment_taken_down is False
        assert "409 Conflict" in result.error

    def test_configmap_transport_error_not_raised(self, cluster, tmp_path, caplog):
        """Connection failures are reported like API errors, not raised."""
        cluster.core_v1.patch_namespaced_config_map.side_effect = MaxRetryError(None, "/api", "connection refused")
        fixup = self.make_fixup(cluster, tmp_path)

        result = fixup.apply()

        assert result.configmap_patched is False
        assert "MaxRetryError" in result.error
        cluster.apps_v1.read_namespaced_deployment.assert_not_called()
        assert "patching configmap" in caplog.text

    def test_deployment_fetch_transport_error_not_raised(self, cluster, tmp_path):
        cluster.apps_v1.read_namespaced_deployment.side_effect = MaxRetryError(None, "/apis", "timeout")
        fixup = self.make_fixup(cluster, tmp_path)

        result = fixup.apply()

        cluster.apps_v1.replace_namespaced_deployment.assert_not_called()
        assert result.configmap_patched is True
        assert result.deployment_taken_down is False
        assert "getting deployment" in result.error

    def test_deployment_update_transport_error_not_raised(self, cluster, tmp_path):
        cluster.apps_v1.read_namespaced_deployment.return_value = make_deployment()
        cluster.apps_v1.replace_namespaced_deployment.side_effect = ProtocolError("Connection aborted.")
        fixup = self.make_fixup(cluster, tmp_path)

        result = fixup.apply()

        assert result.deployment_taken_down is False
        assert "ProtocolError" in result.error
