import yaml
from pathlib import Path
from typing import Any, Dict, List
from loguru import logger

from ..config.env_file import DeployEnv
from ..config.layout import RepoLayout

OTEL_COLLECTOR_ENDPOINT = "http://llm-d-collector-collector.observability-hub.svc.cluster.local:4318"
OTEL_SIDECARS = ("vllm-otel-sidecar.yaml", "openclaw-otel-sidecar.yaml", "moltbook-otel-sidecar.yaml")
MOLTBOOK_NAMESPACE = "moltbook"
MOLTBOOK_OAUTH_SECRET_PLACEHOLDER = "changeme-must-match-client-secret-in-moltbook-oauth-config"

def _secret(name: str, namespace: str, data: Dict[str, str]) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace},
        "type": "Opaque",
        "stringData": data,
    }

def _kustomization(base: str, namespace: str, patches: List[str]) -> Dict[str, Any]:
    return {
        "apiVersion": "kustomize.config.k8s.io/v1beta1",
        "kind": "Kustomization",
        "resources": [base],
        "namespace": namespace,
        "patches": [{"path": p} for p in patches],
    }

def _dump(path: Path, documents: List[Dict[str, Any]]):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump_all(documents, f, default_flow_style=False, sort_keys=False)

class OverlayWriter:
    """Writes the gitignored manifests-private/ Kustomize overlays holding real secrets"""

    def __init__(self, layout: RepoLayout, env: DeployEnv, k8s_mode: bool = False):
        self.layout = layout
        self.env = env
        self.k8s_mode = k8s_mode

    @property
    def openclaw_dir(self) -> Path:
        return self.layout.private / "openclaw"

    @property
    def moltbook_dir(self) -> Path:
        return self.layout.private / "moltbook"

    @property
    def openclaw_oauthclient(self) -> Path:
        return self.openclaw_dir / "oauthclient.yaml"

    @property
    def moltbook_oauthclient(self) -> Path:
        return self.moltbook_dir / "moltbook-oauthclient.yaml"

    def write_all(self) -> List[Path]:
        written = []
        written.extend(self.write_openclaw_overlay())
        written.extend(self.write_moltbook_overlay())
        written.extend(self.write_observability())
        return written

    def write_openclaw_overlay(self) -> List[Path]:
        namespace = self.env.namespace
        kustomization = self.openclaw_dir / "kustomization.yaml"
        secrets_patch = self.openclaw_dir / "secrets-patch.yaml"

        _dump(kustomization, [_kustomization("../../manifests/openclaw/base", namespace, ["secrets-patch.yaml"])])
        _dump(secrets_patch, [
            _secret("openclaw-secrets", namespace, {
                "OPENCLAW_GATEWAY_TOKEN": self.env.get("OPENCLAW_GATEWAY_TOKEN"),
                "OTEL_EXPORTER_OTLP_ENDPOINT": OTEL_COLLECTOR_ENDPOINT,
            }),
            _secret("openclaw-oauth-config", namespace, {
                "client-secret": self.env.get("OPENCLAW_OAUTH_CLIENT_SECRET"),
                "cookie_secret": self.env.get("OPENCLAW_OAUTH_COOKIE_SECRET"),
            }),
        ])
        written = [kustomization, secrets_patch]

        # OAuthClient is cluster-scoped and OpenShift-only, applied on its own
        if not self.k8s_mode:
            _dump(self.openclaw_oauthclient, [{
                "apiVersion": "oauth.openshift.io/v1",
                "kind": "OAuthClient",
                "metadata": {"name": namespace},
                "secret": self.env.get("OPENCLAW_OAUTH_CLIENT_SECRET"),
                "redirectURIs": [f"https://openclaw-{namespace}.{self.env.cluster_domain}/oauth/callback"],
                "grantMethod": "auto",
            }])
            written.append(self.openclaw_oauthclient)

        logger.success(f"OpenClaw overlay written to {self.openclaw_dir}")
        return written

    def write_moltbook_overlay(self) -> List[Path]:
        kustomization = self.moltbook_dir / "kustomization.yaml"
        secrets_patch = self.moltbook_dir / "secrets-patch.yaml"

        _dump(kustomization, [_kustomization("../../manifests/moltbook/base", MOLTBOOK_NAMESPACE, ["secrets-patch.yaml"])])
        _dump(secrets_patch, [
            _secret("moltbook-api-secrets", MOLTBOOK_NAMESPACE, {
                "JWT_SECRET": self.env.get("JWT_SECRET"),
                "ADMIN_API_KEY": self.env.get("ADMIN_API_KEY"),
            }),
            _secret("moltbook-postgresql", MOLTBOOK_NAMESPACE, {
                "database-name": self.env.get("POSTGRES_DB"),
                "database-user": self.env.get("POSTGRES_USER"),
                "database-password": self.env.get("POSTGRES_PASSWORD"),
            }),
            _secret("moltbook-oauth-config", MOLTBOOK_NAMESPACE, {
                "client-secret": self.env.get("MOLTBOOK_OAUTH_CLIENT_SECRET"),
                "cookie_secret": self.env.get("MOLTBOOK_OAUTH_COOKIE_SECRET"),
            }),
        ])
        written = [kustomization, secrets_patch]

        source = self.layout.manifests / "moltbook" / "moltbook-oauthclient.yaml"
        if not self.k8s_mode and source.is_file():
            text = source.read_text(encoding="utf-8")
            text = text.replace("apps.cluster.com", self.env.cluster_domain)
            text = text.replace(MOLTBOOK_OAUTH_SECRET_PLACEHOLDER, self.env.get("MOLTBOOK_OAUTH_CLIENT_SECRET"))
            self.moltbook_oauthclient.write_text(text, encoding="utf-8")
            written.append(self.moltbook_oauthclient)

        logger.success(f"Moltbook overlay written to {self.moltbook_dir}")
        return written

    def write_observability(self) -> List[Path]:
        written = []
        target_dir = self.layout.private / "observability"
        for sidecar in OTEL_SIDECARS:
            source = self.layout.observability / sidecar
            if not source.is_file():
                continue
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / sidecar
            target.write_text(
                source.read_text(encoding="utf-8").replace("CLUSTER_DOMAIN", self.env.cluster_domain),
                encoding="utf-8",
            )
            written.append(target)
        if written:
            logger.info(f"Patched {len(written)} observability sidecar(s) with cluster domain")
        return written
