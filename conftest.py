"""
Shared fixtures: a throwaway repo layout and an in-memory cluster
"""

import pytest
from pathlib import Path
from typing import Dict, List, Optional

from clawdeploy.config.env_file import OVERRIDABLE_KEYS
from clawdeploy.config.layout import RepoLayout
from clawdeploy.openshift_client.client import ApplyResult, ExecResult

AGENT_FILES = (
    "agent-manager-rbac.yaml",
    "agents-config-patch.yaml",
    "shadowman-agent.yaml",
    "philbot-agent.yaml",
    "resource-optimizer-agent.yaml",
    "register-shadowman-job.yaml",
    "register-philbot-job.yaml",
    "register-resource-optimizer-job.yaml",
    "job-grant-roles.yaml",
    "resource-optimizer-rbac.yaml",
    "demo-deployments.yaml",
)

class FakeClusterClient:
    """Records what workflows ask of the cluster; the gateway pod filesystem is a dict"""

    def __init__(self, k8s_mode: bool = False):
        self.k8s_mode = k8s_mode
        self.calls: List[tuple] = []
        self.namespaces = {"alice-openclaw", "moltbook"}
        self.pod_files: Dict[str, str] = {}
        self.executable: set = set()
        self.secrets: Dict[tuple, str] = {}
        self.configmaps: Dict[tuple, str] = {}
        self.created_secrets: Dict[str, Dict[str, str]] = {}
        self.routes: Dict[tuple, str] = {}
        self.fail_files: set = set()
        self.token: Optional[str] = "sa-token"
        self.rollout_ok = True
        self.namespace_delete_ok = True
        self.postgres_pod: Optional[str] = "moltbook-postgresql-0"

    @property
    def cli_binary(self) -> str:
        return "kubectl" if self.k8s_mode else "oc"

    def namespace_exists(self, namespace):
        return namespace in self.namespaces

    def ensure_namespace(self, namespace):
        self.calls.append(("ensure_namespace", namespace))
        self.namespaces.add(namespace)
        return True

    def apply_file(self, path, namespace=None, dry_run=False):
        path = Path(path)
        self.calls.append(("apply_file", path.name, namespace))
        ok = path.name not in self.fail_files
        return [ApplyResult(ok, path.stem, "File", namespace,
                            error_message=None if ok else "API Error: 403 Forbidden")]

    def apply_kustomization(self, directory, namespace_override=None, dry_run=False):
        self.calls.append(("apply_kustomization", Path(directory).name, namespace_override))
        return [ApplyResult(True, Path(directory).name, "Kustomization", namespace_override)]

    def create_generic_secret(self, name, namespace, literals):
        self.calls.append(("create_generic_secret", name, namespace))
        self.created_secrets[name] = dict(literals)
        return True

    def create_clusterrolebinding(self, name, cluster_role, service_account, namespace):
        self.calls.append(("create_clusterrolebinding", name, cluster_role, service_account, namespace))
        return True

    def delete_resource(self, api_version, kind, name, namespace=None):
        self.calls.append(("delete_resource", kind, name, namespace))
        return True

    def delete_all(self, api_version, kind, namespace):
        self.calls.append(("delete_all", kind, namespace))
        return 0

    def delete_namespace(self, namespace, timeout=60):
        self.calls.append(("delete_namespace", namespace))
        if self.namespace_delete_ok:
            self.namespaces.discard(namespace)
        return self.namespace_delete_ok

    def finalize_namespace(self, namespace):
        self.calls.append(("finalize_namespace", namespace))
        self.namespaces.discard(namespace)
        return True

    def find_pod_by_labels(self, namespace, selectors, name_contains=None):
        return self.postgres_pod

    def exec_in_pod(self, pod, namespace, command, container=None, timeout=60):
        self.calls.append(("exec_in_pod", pod, namespace, tuple(command)))
        return ExecResult(returncode=0)

    def wait_for_job_complete(self, name, namespace, timeout=60):
        self.calls.append(("wait_for_job_complete", name, namespace))
        return True

    def rollout_restart(self, deployment, namespace):
        self.calls.append(("rollout_restart", deployment, namespace))
        return True

    def wait_for_rollout(self, deployment, namespace, timeout=120):
        return self.rollout_ok

    def get_configmap_value(self, name, namespace, key):
        return self.configmaps.get((name, key))

    def get_secret_value(self, name, namespace, key):
        return self.secrets.get((name, key))

    def wait_for_secret_value(self, name, namespace, key, attempts=15, interval=2):
        return self.token

    def get_route_host(self, name, namespace):
        return self.routes.get((name, namespace))

    def exec_in_deployment(self, deployment, namespace, command, container=None, timeout=60):
        self.calls.append(("exec_in_deployment", tuple(command)))
        if command[:2] == ["rm", "-rf"]:
            prefix = command[2] + "/"
            for path in [p for p in self.pod_files if p.startswith(prefix)]:
                del self.pod_files[path]
        return ExecResult(returncode=0)

    def write_file_in_deployment(self, deployment, namespace, path, content, container=None, executable=False):
        self.pod_files[path] = content
        if executable:
            self.executable.add(path)
        return True

    def read_file_in_deployment(self, deployment, namespace, path, container=None):
        return self.pod_files.get(path)

    def restarts(self) -> int:
        return sum(1 for call in self.calls if call[0] == "rollout_restart")

    def applied_files(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == "apply_file"]

@pytest.fixture(autouse=True)
def clean_process_env(monkeypatch):
    """Keep the developer's shell from overriding .env values"""
    for key in OVERRIDABLE_KEYS:
        monkeypatch.delenv(key, raising=False)

@pytest.fixture
def layout(tmp_path):
    """A repo checkout with the agent manifests setup-agents expects"""
    layout = RepoLayout(tmp_path)
    layout.agents.mkdir(parents=True)
    for name in AGENT_FILES:
        (layout.agents / name).write_text(f"# {name}\n", encoding="utf-8")
    (layout.agents / "resource-optimizer").mkdir()
    layout.resource_report_job_template.write_text("kind: Job\n", encoding="utf-8")
    layout.skills.mkdir(parents=True)
    layout.openclaw_base.mkdir(parents=True)
    layout.observability.mkdir()
    return layout

def write_dotenv(layout: RepoLayout, **values):
    base = {
        "OPENCLAW_PREFIX": "alice",
        "OPENCLAW_NAMESPACE": "alice-openclaw",
        "CLUSTER_DOMAIN": "apps.example.com",
        "POSTGRES_DB": "moltbook",
        "POSTGRES_USER": "moltbook",
        "POSTGRES_PASSWORD": "pg-secret",
    }
    base.update(values)
    lines = [f'{key}="{value}"' for key, value in base.items()]
    layout.env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return layout.env_file

@pytest.fixture
def fake_client():
    return FakeClusterClient()
