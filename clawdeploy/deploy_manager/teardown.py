import time
from loguru import logger

from ..config.env_file import DeployEnv
from ..config.layout import RepoLayout
from ..templates.renderer import cleanup_generated
from ..a2a.keycloak import (
    KeycloakAdmin,
    spiffe_client_id,
    default_keycloak_url,
    DEFAULT_REALM,
    DEFAULT_ADMIN_USERNAME,
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_TRUST_DOMAIN,
)
from .report import WorkflowReport
from .platform_setup import scc_binding_name

# Deleted one kind at a time before the namespace itself, so the namespace
# delete doesn't hang on finalizers
NAMESPACED_KINDS = (
    ("apps/v1", "Deployment"),
    ("apps/v1", "StatefulSet"),
    ("apps/v1", "DaemonSet"),
    ("apps/v1", "ReplicaSet"),
    ("v1", "Pod"),
    ("v1", "Service"),
    ("autoscaling/v1", "HorizontalPodAutoscaler"),
    ("batch/v1", "Job"),
    ("batch/v1", "CronJob"),
    ("v1", "ConfigMap"),
    ("v1", "Secret"),
    ("v1", "ServiceAccount"),
    ("rbac.authorization.k8s.io/v1", "Role"),
    ("rbac.authorization.k8s.io/v1", "RoleBinding"),
    ("v1", "PersistentVolumeClaim"),
    ("networking.k8s.io/v1", "NetworkPolicy"),
    ("policy/v1", "PodDisruptionBudget"),
    ("v1", "ResourceQuota"),
)
OPENSHIFT_NAMESPACED_KINDS = (
    ("route.openshift.io/v1", "Route"),
)

class Teardown:
    """Remove an OpenClaw deployment and its cluster-scoped leftovers"""

    def __init__(self, client, layout: RepoLayout, k8s_mode: bool = False,
                 keycloak_factory=KeycloakAdmin, namespace_timeout: int = 60):
        self.client = client
        self.layout = layout
        self.k8s_mode = k8s_mode
        self.keycloak_factory = keycloak_factory
        self.namespace_timeout = namespace_timeout

    def run(self, env: DeployEnv, namespace: str, delete_env: bool = False) -> WorkflowReport:
        report = WorkflowReport(name="teardown")
        report.details["namespace"] = namespace

        if env.a2a_enabled:
            self._remove_keycloak_client(env, namespace, report)
            if not self.k8s_mode:
                if self.client.delete_resource("rbac.authorization.k8s.io/v1", "ClusterRoleBinding",
                                               scc_binding_name(namespace)):
                    logger.success(f"ClusterRoleBinding {scc_binding_name(namespace)} deleted")
                else:
                    report.warn(f"Could not delete ClusterRoleBinding {scc_binding_name(namespace)}")
        else:
            logger.info("A2A was not enabled, skipping Keycloak/SCC cleanup")

        if not self.k8s_mode:
            logger.info("Removing OpenClaw OAuthClient...")
            if self.client.delete_resource("oauth.openshift.io/v1", "OAuthClient", namespace):
                logger.success(f"OAuthClient {namespace} removed")
            else:
                report.warn(f"Could not delete OAuthClient {namespace}")

        self.teardown_namespace(namespace, report)

        env_file = self.layout.env_file
        if delete_env and env_file.is_file():
            env_file.unlink()
            logger.success("Deleted .env")
        elif env_file.is_file():
            logger.info(".env kept (use --delete-env to remove)")

        removed = cleanup_generated(self.layout.template_roots)
        if removed:
            logger.success(f"Removed {removed} generated YAML files")
        else:
            logger.info("No generated YAML files to clean up")
        report.details["generated_removed"] = str(removed)
        return report

    def _remove_keycloak_client(self, env: DeployEnv, namespace: str, report: WorkflowReport):
        url = env.get("KEYCLOAK_URL") or default_keycloak_url(env.cluster_domain)
        realm = env.get("KEYCLOAK_REALM", DEFAULT_REALM)
        client_id = spiffe_client_id(env.get("SPIFFE_TRUST_DOMAIN", DEFAULT_TRUST_DOMAIN), namespace)

        logger.info(f"Removing Keycloak client for {namespace}...")
        keycloak = self.keycloak_factory(
            url,
            realm,
            env.get("KEYCLOAK_ADMIN_USERNAME", DEFAULT_ADMIN_USERNAME),
            env.get("KEYCLOAK_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
        )
        if not keycloak.get_token():
            report.warn(f"Could not authenticate to Keycloak, remove client {client_id} "
                        f"from realm {realm} at {url} manually")
            return

        uuid = keycloak.find_client_uuid(client_id)
        if not uuid:
            report.warn(f"Keycloak client not found: {client_id} (already removed or never registered)")
        elif keycloak.delete_client(uuid):
            logger.success(f"Keycloak client deleted: {client_id}")
        else:
            report.warn(f"Failed to delete Keycloak client {client_id} (may need manual cleanup)")

    def teardown_namespace(self, namespace: str, report: WorkflowReport) -> bool:
        if not self.client.namespace_exists(namespace):
            report.warn(f"Namespace {namespace} not found, skipping")
            return True

        logger.info(f"Deleting resources in {namespace}...")
        kinds = NAMESPACED_KINDS
        if not self.k8s_mode:
            kinds = kinds + OPENSHIFT_NAMESPACED_KINDS
        for api_version, kind in kinds:
            deleted = self.client.delete_all(api_version, kind, namespace)
            if deleted:
                logger.debug(f"Deleted {deleted} {kind}(s)")

        logger.info(f"Deleting namespace {namespace}...")
        if self.client.delete_namespace(namespace, timeout=self.namespace_timeout):
            logger.success(f"Namespace {namespace} deleted")
            return True

        report.warn("Namespace deletion timed out, removing finalizers...")
        self.client.finalize_namespace(namespace)
        time.sleep(3)
        if not self.client.namespace_exists(namespace):
            logger.success(f"Namespace {namespace} deleted (finalizers stripped)")
            return True

        report.warn(f"Namespace {namespace} still terminating, check: "
                    f"{self.client.cli_binary} get namespace {namespace} -o yaml")
        return False
