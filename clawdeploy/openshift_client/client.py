import os
import base64
import shutil
import subprocess
import time
import yaml
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from loguru import logger
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.stream import stream
from websocket import WebSocketException
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import ResourceNotFoundError, NotFoundError

from ..errors import DeployError

# Kinds that only exist on OpenShift; skipped when targeting vanilla Kubernetes
OPENSHIFT_ONLY_KINDS = {
    'Route', 'OAuthClient', 'SecurityContextConstraints',
    'DeploymentConfig', 'BuildConfig', 'ImageStream',
}

RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"

# Base64 characters per exec argument; Linux caps a single argument at 128 KiB
WRITE_CHUNK_SIZE = 64 * 1024

@dataclass
class ClusterInfo:
    """Information about the connected cluster"""
    api_url: str
    version: str
    username: str
    namespace: str
    connected: bool = False

@dataclass
class ApplyResult:
    """Result of applying a single manifest"""
    success: bool
    resource_name: str
    resource_kind: str
    namespace: Optional[str]
    action: str = "created"
    error_message: Optional[str] = None

@dataclass
class ExecResult:
    """Result of running a command inside a container"""
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

class ClusterClient:
    """Client for OpenShift or vanilla Kubernetes clusters"""

    def __init__(self, kubeconfig_path: Optional[str] = None, k8s_mode: bool = False):
        """
        Initialize cluster client

        Args:
            kubeconfig_path: Path to kubeconfig file, defaults to $KUBECONFIG or ~/.kube/config
            k8s_mode: Target vanilla Kubernetes instead of OpenShift
        """
        self.kubeconfig_path = (
            kubeconfig_path
            or os.environ.get("KUBECONFIG")
            or os.path.expanduser("~/.kube/config")
        )
        self.k8s_mode = k8s_mode
        self.k8s_client = None
        self.dynamic_client = None
        self.core_v1 = None
        self.apps_v1 = None
        self.batch_v1 = None
        self.cluster_info = None
        self.connected = False

    @property
    def cli_binary(self) -> str:
        return "kubectl" if self.k8s_mode else "oc"

    @property
    def context_namespace(self) -> str:
        """Namespace of the active kubeconfig context, like kubectl without -n"""
        return self.cluster_info.namespace if self.cluster_info else "default"

    def connect(self) -> bool:
        """
        Connect to the cluster

        Returns:
            bool: True if connection successful
        """
        try:
            config.load_kube_config(config_file=self.kubeconfig_path)

            self.k8s_client = client.ApiClient()
            self.dynamic_client = DynamicClient(self.k8s_client)
            self.core_v1 = client.CoreV1Api(self.k8s_client)
            self.apps_v1 = client.AppsV1Api(self.k8s_client)
            self.batch_v1 = client.BatchV1Api(self.k8s_client)

            self.cluster_info = self._get_cluster_info()
            self.connected = True

            logger.info(f"Connected to {self.cluster_info.api_url} as {self.cluster_info.username}")
            return True

        except Exception as e:
            logger.error(f"Failed to connect to cluster: {str(e)}")
            self.connected = False
            return False

    def _get_cluster_info(self) -> ClusterInfo:
        """Get information about the connected cluster"""
        try:
            version_info = client.VersionApi(self.k8s_client).get_code()
            _contexts, active_context = config.list_kube_config_contexts(config_file=self.kubeconfig_path)
            context = active_context.get('context', {})

            return ClusterInfo(
                api_url=self.k8s_client.configuration.host,
                version=version_info.git_version,
                username=self._whoami() or context.get('user', 'unknown'),
                namespace=context.get('namespace', 'default'),
                connected=True
            )

        except Exception as e:
            logger.warning(f"Could not get cluster info: {str(e)}")
            return ClusterInfo(
                api_url="unknown",
                version="unknown",
                username="unknown",
                namespace="default",
                connected=True
            )

    def _whoami(self) -> Optional[str]:
        """Current user name as reported by OpenShift (`oc whoami`)"""
        if self.k8s_mode:
            return None
        try:
            users = self.dynamic_client.resources.get(api_version="user.openshift.io/v1", kind="User")
            return users.get(name="~").metadata.name
        except Exception as e:
            logger.debug(f"Could not resolve current user: {str(e)}")
            return None

    def _require_connection(self):
        if not self.connected:
            raise DeployError("Not connected to cluster")

    def _resource(self, api_version: str, kind: str):
        return self.dynamic_client.resources.get(api_version=api_version, kind=kind)

    # ------------------------------------------------------------------
    # Cluster discovery
    # ------------------------------------------------------------------

    def detect_cluster_domain(self) -> Optional[str]:
        """Read the apps domain from the OpenShift ingress config"""
        if self.k8s_mode:
            return None
        try:
            ingress = self._resource("config.openshift.io/v1", "Ingress").get(name="cluster")
            return ingress.spec.domain
        except Exception as e:
            logger.warning(f"Could not auto-detect cluster domain: {str(e)}")
            return None

    def get_route_host(self, name: str, namespace: str) -> Optional[str]:
        if self.k8s_mode:
            return None
        try:
            route = self._resource("route.openshift.io/v1", "Route").get(name=name, namespace=namespace)
            return route.spec.host
        except Exception as e:
            logger.debug(f"Route {namespace}/{name} not available: {str(e)}")
            return None

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def namespace_exists(self, namespace: str) -> bool:
        self._require_connection()
        try:
            self.core_v1.read_namespace(name=namespace)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise DeployError(f"Could not read namespace {namespace}: {e.status} {e.reason}")

    def ensure_namespace(self, namespace: str) -> bool:
        if self.namespace_exists(namespace):
            logger.debug(f"Namespace {namespace} already exists")
            return True
        try:
            self.core_v1.create_namespace(body={
                "apiVersion": "v1",
                "kind": "Namespace",
                "metadata": {"name": namespace},
            })
            logger.success(f"Created namespace {namespace}")
            return True
        except ApiException as e:
            if e.status == 409:
                return True
            logger.error(f"Failed to create namespace {namespace}: {str(e)}")
            return False

    def delete_namespace(self, namespace: str, timeout: int = 60) -> bool:
        """Delete a namespace and wait for it to disappear"""
        try:
            self.core_v1.delete_namespace(name=namespace)
        except ApiException as e:
            if e.status == 404:
                return True
            logger.error(f"Failed to delete namespace {namespace}: {str(e)}")
            return False

        start_time = time.time()
        while time.time() - start_time < timeout:
            if not self.namespace_exists(namespace):
                return True
            time.sleep(2)
        return False

    def finalize_namespace(self, namespace: str) -> bool:
        """Strip spec.finalizers through the /finalize subresource"""
        try:
            ns = self.core_v1.read_namespace(name=namespace)
            ns.spec.finalizers = []
            self.core_v1.replace_namespace_finalize(name=namespace, body=ns)
            return True
        except ApiException as e:
            if e.status == 404:
                return True
            logger.warning(f"Could not remove finalizers from {namespace}: {str(e)}")
            return False

    # ------------------------------------------------------------------
    # Applying manifests
    # ------------------------------------------------------------------

    def apply_manifest(self, manifest: Dict[str, Any], namespace: Optional[str] = None,
                       dry_run: bool = False) -> ApplyResult:
        """
        Create a resource, or merge-patch it when it already exists

        Args:
            manifest: Kubernetes manifest as dictionary
            namespace: Target namespace (overrides manifest namespace)
            dry_run: Server-side dry run only

        Returns:
            ApplyResult: Result of the apply
        """
        kind = manifest.get('kind', 'Unknown')
        metadata = manifest.setdefault('metadata', {})
        name = metadata.get('name', 'unknown')
        target_namespace = namespace or metadata.get('namespace')

        if not self.connected:
            return ApplyResult(False, name, kind, target_namespace, error_message="Not connected to cluster")

        if self.k8s_mode and kind in OPENSHIFT_ONLY_KINDS:
            logger.warning(f"Skipping OpenShift-only resource {kind}/{name}")
            return ApplyResult(True, name, kind, target_namespace, action="skipped")

        kwargs = {}
        if dry_run:
            kwargs['dry_run'] = 'All'

        try:
            resource = self._resource(manifest.get('apiVersion', 'v1'), kind)

            if resource.namespaced:
                target_namespace = target_namespace or self.context_namespace
                metadata['namespace'] = target_namespace
                kwargs['namespace'] = target_namespace
            else:
                metadata.pop('namespace', None)
                target_namespace = None

            try:
                resource.create(body=manifest, **kwargs)
                action = "created"
            except ApiException as e:
                if e.status != 409:
                    raise
                resource.patch(
                    body=manifest,
                    name=name,
                    content_type="application/merge-patch+json",
                    **kwargs
                )
                action = "configured"

            if dry_run:
                action = f"{action} (dry run)"
            logger.info(f"{kind}/{name} {action}" + (f" in {target_namespace}" if target_namespace else ""))
            return ApplyResult(True, name, kind, target_namespace, action=action)

        except ResourceNotFoundError as e:
            error_msg = f"Unknown resource type {manifest.get('apiVersion')}/{kind}: {str(e)}"
        except ApiException as e:
            error_msg = f"API Error: {e.status} {e.reason}"
        except Exception as e:
            error_msg = f"Apply error: {str(e)}"

        logger.error(f"Failed to apply {kind}/{name}: {error_msg}")
        return ApplyResult(False, name, kind, target_namespace, error_message=error_msg)

    def apply_manifests(self, manifests: List[Dict[str, Any]], namespace: Optional[str] = None,
                        dry_run: bool = False) -> List[ApplyResult]:
        """Apply manifests in dependency order, continuing past failures"""
        results = []
        for manifest in sort_manifests_by_order(manifests):
            result = self.apply_manifest(manifest, namespace, dry_run)
            results.append(result)
            if not result.success:
                logger.warning(f"Apply failed for {result.resource_kind}/{result.resource_name}, continuing with next manifest")
        return results

    def apply_file(self, path: Path, namespace: Optional[str] = None, dry_run: bool = False) -> List[ApplyResult]:
        return self.apply_manifests(load_manifests(path), namespace, dry_run)

    def kustomize_build(self, directory: Path) -> List[Dict[str, Any]]:
        """Render a kustomization with `oc kustomize` / `kubectl kustomize`"""
        binary = shutil.which(self.cli_binary)
        if not binary:
            raise DeployError(f"{self.cli_binary} CLI not found. It is needed to build {directory}")

        completed = subprocess.run(
            [binary, "kustomize", str(directory)],
            capture_output=True,
            text=True,
        )
        if completed.returncode != 0:
            raise DeployError(f"kustomize build of {directory} failed: {completed.stderr.strip()}")

        return [doc for doc in yaml.safe_load_all(completed.stdout) if isinstance(doc, dict)]

    def apply_kustomization(self, directory: Path, namespace_override: Optional[str] = None,
                            dry_run: bool = False) -> List[ApplyResult]:
        """Build and apply a kustomization, optionally moving `openclaw` resources to another namespace"""
        manifests = self.kustomize_build(directory)
        if namespace_override:
            manifests = rewrite_namespace(manifests, "openclaw", namespace_override)
        return self.apply_manifests(manifests, dry_run=dry_run)

    # ------------------------------------------------------------------
    # Deleting resources
    # ------------------------------------------------------------------

    def delete_resource(self, api_version: str, kind: str, name: str,
                        namespace: Optional[str] = None) -> bool:
        """
        Delete a single resource

        Returns:
            bool: True if deleted or already absent
        """
        try:
            resource = self._resource(api_version, kind)
            kwargs = {'name': name}
            if resource.namespaced:
                kwargs['namespace'] = namespace
            if kind == 'Job':
                kwargs['propagation_policy'] = 'Background'
            resource.delete(**kwargs)
            logger.info(f"Deleted {kind}/{name}")
            return True
        except (NotFoundError, ResourceNotFoundError):
            logger.debug(f"{kind}/{name} not found")
            return True
        except ApiException as e:
            if e.status == 404:
                return True
            logger.warning(f"Could not delete {kind}/{name}: {e.status} {e.reason}")
            return False
        except Exception as e:
            logger.warning(f"Error deleting {kind}/{name}: {str(e)}")
            return False

    def delete_all(self, api_version: str, kind: str, namespace: str) -> int:
        """Delete every resource of a kind in a namespace; returns how many were deleted"""
        try:
            resource = self._resource(api_version, kind)
            items = resource.get(namespace=namespace).items
        except ResourceNotFoundError:
            logger.debug(f"{kind} not served by this cluster")
            return 0
        except Exception as e:
            logger.warning(f"Could not list {kind} in {namespace}: {str(e)}")
            return 0

        deleted = 0
        for item in items:
            if self.delete_resource(api_version, kind, item.metadata.name, namespace):
                deleted += 1
        return deleted

    def create_clusterrolebinding(self, name: str, cluster_role: str,
                                  service_account: str, namespace: str) -> bool:
        """
        Bind a ClusterRole to a ServiceAccount

        Returns:
            bool: True if created or already present
        """
        if not self.connected:
            logger.error("Not connected to cluster")
            return False

        body = {
            "apiVersion": "rbac.authorization.k8s.io/v1",
            "kind": "ClusterRoleBinding",
            "metadata": {"name": name},
            "roleRef": {
                "apiGroup": "rbac.authorization.k8s.io",
                "kind": "ClusterRole",
                "name": cluster_role,
            },
            "subjects": [{
                "kind": "ServiceAccount",
                "name": service_account,
                "namespace": namespace,
            }],
        }
        try:
            crb_resource = self._resource("rbac.authorization.k8s.io/v1", "ClusterRoleBinding")
            result = crb_resource.create(body=body)
            logger.info(f"Created ClusterRoleBinding: {result.metadata.name}")
            return True
        except ApiException as e:
            if e.status == 409:
                logger.info(f"ClusterRoleBinding {name} already exists")
                return True
            logger.error(f"Failed to create ClusterRoleBinding: {str(e)}")
            return False
        except Exception as e:
            logger.error(f"Error creating ClusterRoleBinding: {str(e)}")
            return False

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def create_generic_secret(self, name: str, namespace: str, literals: Dict[str, str]) -> bool:
        """Create or replace an Opaque secret from literal values"""
        body = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace),
            type="Opaque",
            string_data=literals,
        )
        try:
            self.core_v1.create_namespaced_secret(namespace=namespace, body=body)
            logger.info(f"Created secret {name}")
            return True
        except ApiException as e:
            if e.status != 409:
                logger.error(f"Failed to create secret {name}: {str(e)}")
                return False
        try:
            self.core_v1.replace_namespaced_secret(name=name, namespace=namespace, body=body)
            logger.info(f"Updated secret {name}")
            return True
        except ApiException as e:
            logger.error(f"Failed to update secret {name}: {str(e)}")
            return False

    def get_secret_value(self, name: str, namespace: str, key: str) -> Optional[str]:
        try:
            secret = self.core_v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status != 404:
                logger.warning(f"Could not read secret {name}: {e.status} {e.reason}")
            return None

        encoded = (secret.data or {}).get(key)
        if not encoded:
            return None
        return base64.b64decode(encoded).decode("utf-8")

    def wait_for_secret_value(self, name: str, namespace: str, key: str,
                              attempts: int = 15, interval: float = 2) -> Optional[str]:
        """Poll until a secret key is populated, e.g. a ServiceAccount token"""
        for attempt in range(1, attempts + 1):
            value = self.get_secret_value(name, namespace, key)
            if value:
                return value
            logger.info(f"  Waiting for {name}... ({attempt}/{attempts})")
            time.sleep(interval)
        return None

    def get_configmap_value(self, name: str, namespace: str, key: str) -> Optional[str]:
        try:
            configmap = self.core_v1.read_namespaced_config_map(name=name, namespace=namespace)
            return (configmap.data or {}).get(key)
        except ApiException as e:
            if e.status != 404:
                logger.warning(f"Could not read configmap {name}: {e.status} {e.reason}")
            return None

    # ------------------------------------------------------------------
    # Jobs and rollouts
    # ------------------------------------------------------------------

    def wait_for_job_complete(self, name: str, namespace: str, timeout: int = 60) -> bool:
        """
        Wait for a Job to report the Complete condition

        Returns:
            bool: True if complete, False on failure or timeout
        """
        start_time = time.time()
        while time.time() - start_time < timeout:
            try:
                job = self.batch_v1.read_namespaced_job_status(name=name, namespace=namespace)
                for condition in job.status.conditions or []:
                    if condition.status != 'True':
                        continue
                    if condition.type == 'Complete':
                        return True
                    if condition.type == 'Failed':
                        logger.warning(f"Job {name} failed: {condition.message}")
                        return False
            except ApiException as e:
                if e.status != 404:
                    logger.warning(f"Error reading job {name}: {e.status} {e.reason}")
            time.sleep(2)
        return False

    def rollout_restart(self, deployment: str, namespace: str) -> bool:
        body = {
            "spec": {
                "template": {
                    "metadata": {
                        "annotations": {
                            RESTARTED_AT_ANNOTATION: datetime.now(timezone.utc).isoformat()
                        }
                    }
                }
            }
        }
        try:
            self.apps_v1.patch_namespaced_deployment(name=deployment, namespace=namespace, body=body)
            logger.info(f"Restarted deployment/{deployment}")
            return True
        except ApiException as e:
            logger.error(f"Failed to restart deployment/{deployment}: {str(e)}")
            return False

    def wait_for_rollout(self, deployment: str, namespace: str, timeout: int = 120) -> bool:
        """Wait until every replica of the deployment is updated and available"""
        start_time = time.time()
        while time.time() - start_time < timeout:
            try:
                dep = self.apps_v1.read_namespaced_deployment_status(name=deployment, namespace=namespace)
                if rollout_complete(dep):
                    return True
            except ApiException as e:
                if e.status != 404:
                    logger.warning(f"Error reading deployment/{deployment}: {e.status} {e.reason}")
            time.sleep(3)
        logger.warning(f"deployment/{deployment} not ready after {timeout}s")
        return False

    # ------------------------------------------------------------------
    # Pods and exec
    # ------------------------------------------------------------------

    def find_deployment_pod(self, deployment: str, namespace: str) -> Optional[str]:
        """Newest running, non-terminating pod owned by the deployment's ReplicaSet"""
        try:
            dep = self.apps_v1.read_namespaced_deployment(name=deployment, namespace=namespace)
        except ApiException as e:
            logger.error(f"Deployment {deployment} not found in {namespace}: {e.status} {e.reason}")
            return None

        match_labels = dep.spec.selector.match_labels or {}
        selector = ",".join(f"{k}={v}" for k, v in match_labels.items())
        pods = self.core_v1.list_namespaced_pod(
            namespace=namespace,
            label_selector=selector,
            field_selector="status.phase=Running",
        ).items

        candidates = [
            pod for pod in pods
            if pod.metadata.deletion_timestamp is None
            and any(ref.kind == "ReplicaSet" for ref in (pod.metadata.owner_references or []))
        ]
        if not candidates:
            return None
        candidates.sort(key=lambda pod: pod.metadata.creation_timestamp, reverse=True)
        return candidates[0].metadata.name

    def find_pod_by_labels(self, namespace: str, selectors: Iterable[str],
                           name_contains: Optional[str] = None) -> Optional[str]:
        """Try label selectors in order, then fall back to a pod name substring"""
        try:
            for selector in selectors:
                pods = self.core_v1.list_namespaced_pod(namespace=namespace, label_selector=selector).items
                if pods:
                    return pods[0].metadata.name
            if name_contains:
                for pod in self.core_v1.list_namespaced_pod(namespace=namespace).items:
                    if name_contains in pod.metadata.name.lower():
                        return pod.metadata.name
        except ApiException as e:
            logger.warning(f"Could not list pods in {namespace}: {e.status} {e.reason}")
        return None

    def exec_in_pod(self, pod: str, namespace: str, command: List[str],
                    container: Optional[str] = None, timeout: int = 60) -> ExecResult:
        """Run a command in a pod container and collect its output"""
        kwargs = {}
        if container:
            kwargs['container'] = container
        try:
            resp = stream(
                self.core_v1.connect_get_namespaced_pod_exec,
                pod,
                namespace,
                command=command,
                stderr=True,
                stdin=False,
                stdout=True,
                tty=False,
                _preload_content=False,
                **kwargs
            )
            resp.run_forever(timeout=timeout)
            stdout = resp.read_stdout() or ""
            stderr = resp.read_stderr() or ""
            returncode = resp.returncode
            resp.close()
        except ApiException as e:
            logger.error(f"Exec in {pod} failed: {e.status} {e.reason}")
            return ExecResult(returncode=None, stderr=str(e))
        except (WebSocketException, OSError) as e:
            logger.error(f"Exec in {pod} failed: {str(e)}")
            return ExecResult(returncode=None, stderr=str(e))

        if returncode is None:
            logger.warning(f"Command in {pod} did not finish within {timeout}s")
        return ExecResult(returncode=returncode, stdout=stdout, stderr=stderr)

    def exec_in_deployment(self, deployment: str, namespace: str, command: List[str],
                           container: Optional[str] = None, timeout: int = 60) -> ExecResult:
        pod = self.find_deployment_pod(deployment, namespace)
        if not pod:
            raise DeployError(f"No running pod found for deployment/{deployment} in {namespace}")
        return self.exec_in_pod(pod, namespace, command, container, timeout)

    def write_file_in_deployment(self, deployment: str, namespace: str, path: str, content: str,
                                 container: Optional[str] = None, executable: bool = False) -> bool:
        """
        Write a file inside the deployment's pod

        The content is base64-encoded and appended to a staging file in chunks
        small enough for a single argv entry, then decoded into place.
        """
        pod = self.find_deployment_pod(deployment, namespace)
        if not pod:
            raise DeployError(f"No running pod found for deployment/{deployment} in {namespace}")

        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        chunks = [encoded[i:i + WRITE_CHUNK_SIZE] for i in range(0, len(encoded), WRITE_CHUNK_SIZE)] or [""]
        staging = f"{path}.b64"
        for index, chunk in enumerate(chunks):
            redirect = ">" if index == 0 else ">>"
            script = f'mkdir -p "$(dirname "$1")" && printf %s "$2" {redirect} "$1"'
            result = self.exec_in_pod(pod, namespace, ["sh", "-c", script, "sh", staging, chunk], container)
            if not result.ok:
                logger.error(f"Failed to write {path}: {result.stderr.strip()}")
                return False

        script = 'base64 -d "$1.b64" > "$1" && rm -f "$1.b64"'
        if executable:
            script += ' && chmod +x "$1"'
        result = self.exec_in_pod(pod, namespace, ["sh", "-c", script, "sh", path], container)
        if not result.ok:
            logger.error(f"Failed to write {path}: {result.stderr.strip()}")
        return result.ok

    def read_file_in_deployment(self, deployment: str, namespace: str, path: str,
                                container: Optional[str] = None) -> Optional[str]:
        result = self.exec_in_deployment(
            deployment, namespace, ["sh", "-c", 'test -f "$1" && cat "$1"', "sh", path], container
        )
        return result.stdout if result.ok else None

def rollout_complete(deployment) -> bool:
    """Mirror of `kubectl rollout status` success for a Deployment object"""
    spec_replicas = deployment.spec.replicas if deployment.spec.replicas is not None else 1
    status = deployment.status
    if (status.observed_generation or 0) < (deployment.metadata.generation or 0):
        return False
    return (
        (status.updated_replicas or 0) >= spec_replicas
        and (status.replicas or 0) == (status.updated_replicas or 0)
        and (status.available_replicas or 0) >= spec_replicas
    )

def load_manifests(path: Path) -> List[Dict[str, Any]]:
    """Load every document from a YAML file"""
    with open(path, 'r', encoding='utf-8') as f:
        return [doc for doc in yaml.safe_load_all(f) if isinstance(doc, dict)]

def rewrite_namespace(manifests: List[Dict[str, Any]], source: str, target: str) -> List[Dict[str, Any]]:
    """Move resources from namespace `source` to `target`"""
    for manifest in manifests:
        metadata = manifest.get('metadata') or {}
        if metadata.get('namespace') == source:
            metadata['namespace'] = target
        for subject in manifest.get('subjects') or []:
            if subject.get('namespace') == source:
                subject['namespace'] = target
    return manifests

def sort_manifests_by_order(manifests: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Sort manifests by deployment order

    Args:
        manifests: List of manifests to sort

    Returns:
        List[Dict]: Sorted manifests
    """
    order_priority = {
        'Namespace': 0,
        'CustomResourceDefinition': 1,
        'SecurityContextConstraints': 2,
        'ServiceAccount': 3,
        'Secret': 4,
        'ConfigMap': 5,
        'PersistentVolumeClaim': 6,
        'ResourceQuota': 7,
        'Role': 8,
        'ClusterRole': 9,
        'RoleBinding': 10,
        'ClusterRoleBinding': 11,
        'NetworkPolicy': 12,
        'Service': 13,
        'Deployment': 14,
        'StatefulSet': 15,
        'DaemonSet': 16,
        'PodDisruptionBudget': 17,
        'Job': 18,
        'CronJob': 19,
        'Pod': 20,
        'Route': 21,
        'Ingress': 22,
        'OAuthClient': 23,
    }

    def get_priority(manifest):
        return order_priority.get(manifest.get('kind', 'Unknown'), 100)

    return sorted(manifests, key=get_priority)
