import time
from loguru import logger
from kubernetes import client
from kubernetes.client.rest import ApiException

METRICS_AVAILABLE = "available"
METRICS_NOT_INSTALLED = "not-installed"
METRICS_UNAUTHORIZED = "unauthorized"

class ServiceAccountAccessChecker:
    """Probe what a ServiceAccount token is allowed to do"""

    def __init__(self, cluster_client, token: str, retries: int = 10, interval: float = 2):
        """
        Initialize the checker

        Args:
            cluster_client: Connected ClusterClient; its API host and TLS settings are reused
            token: Bearer token of the ServiceAccount under test
            retries: Attempts while the token is still propagating (HTTP 401)
            interval: Seconds between attempts
        """
        base = cluster_client.k8s_client.configuration
        configuration = client.Configuration()
        configuration.host = base.host
        configuration.verify_ssl = base.verify_ssl
        configuration.ssl_ca_cert = base.ssl_ca_cert
        configuration.api_key = {"authorization": token}
        configuration.api_key_prefix = {"authorization": "Bearer"}

        self.api_client = client.ApiClient(configuration)
        self.core_v1 = client.CoreV1Api(self.api_client)
        self.custom_objects = client.CustomObjectsApi(self.api_client)
        self.retries = retries
        self.interval = interval

    def can_list_pods(self, namespace: str) -> bool:
        for attempt in range(1, self.retries + 1):
            try:
                self.core_v1.list_namespaced_pod(namespace=namespace, limit=1)
                return True
            except ApiException as e:
                if e.status == 401 and attempt < self.retries:
                    logger.info(f"  Token not active yet, retrying ({attempt}/{self.retries})...")
                    time.sleep(self.interval)
                    continue
                logger.debug(f"List pods in {namespace} denied: {e.status} {e.reason}")
                return False
        return False

    def metrics_available(self, namespace: str) -> str:
        try:
            self.custom_objects.list_namespaced_custom_object(
                group="metrics.k8s.io",
                version="v1beta1",
                namespace=namespace,
                plural="pods",
            )
            return METRICS_AVAILABLE
        except ApiException as e:
            if e.status in (401, 403):
                return METRICS_UNAUTHORIZED
            return METRICS_NOT_INSTALLED

    def write_blocked(self, namespace: str) -> bool:
        """Deleting a pod that does not exist must be refused before the lookup (403)"""
        try:
            self.core_v1.delete_namespaced_pod(name="nonexistent-test-pod", namespace=namespace)
        except ApiException as e:
            return e.status == 403
        return False
