"""
Cluster client module for OpenShift and Kubernetes
"""

from .client import (
    ClusterClient,
    ClusterInfo,
    ApplyResult,
    ExecResult,
    OPENSHIFT_ONLY_KINDS,
    load_manifests,
    rewrite_namespace,
    rollout_complete,
    sort_manifests_by_order,
)
from .access_check import (
    ServiceAccountAccessChecker,
    METRICS_AVAILABLE,
    METRICS_NOT_INSTALLED,
    METRICS_UNAUTHORIZED,
)

__all__ = [
    "ClusterClient",
    "ClusterInfo",
    "ApplyResult",
    "ExecResult",
    "OPENSHIFT_ONLY_KINDS",
    "load_manifests",
    "rewrite_namespace",
    "rollout_complete",
    "sort_manifests_by_order",
    "ServiceAccountAccessChecker",
    "METRICS_AVAILABLE",
    "METRICS_NOT_INSTALLED",
    "METRICS_UNAUTHORIZED",
]
