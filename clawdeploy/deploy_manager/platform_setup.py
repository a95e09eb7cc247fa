from dataclasses import dataclass
from typing import Dict, Optional
from loguru import logger

from ..errors import DeployError
from ..config.env_file import (
    DeployEnv,
    load_env,
    write_env,
    generate_secret,
    generate_cookie_secret,
    DEFAULT_MODEL_ENDPOINT,
)
from ..config.layout import RepoLayout
from ..templates.renderer import render_tree, PLATFORM_TEMPLATE_VARIABLES
from ..templates.overlays import OverlayWriter, MOLTBOOK_NAMESPACE
from ..a2a.keycloak import (
    default_keycloak_url,
    DEFAULT_REALM,
    DEFAULT_ADMIN_USERNAME,
    DEFAULT_ADMIN_PASSWORD,
    OAUTH_PROXY_SERVICE_ACCOUNT,
)
from .report import WorkflowReport, apply_file
from .agent_setup import AgentSetup

DEFAULT_A2A_SCC = "anyuid"

def namespace_for_prefix(prefix: str) -> str:
    return f"{prefix}-openclaw"

def scc_binding_name(namespace: str) -> str:
    return f"openclaw-authbridge-scc-{namespace}"

@dataclass
class SetupOptions:
    """Answers collected before a platform setup run"""
    prefix: str
    cluster_domain: str
    postgres_db: str = ""
    postgres_user: str = ""
    postgres_password: str = ""
    anthropic_api_key: str = ""
    model_endpoint: str = ""
    vertex_enabled: bool = False
    google_cloud_project: str = ""
    google_cloud_location: str = ""
    with_a2a: bool = False
    keycloak_url: str = ""
    keycloak_realm: str = ""
    keycloak_admin_username: str = ""
    keycloak_admin_password: str = ""

def build_setup_values(existing: DeployEnv, options: SetupOptions) -> Dict[str, str]:
    """
    Compute the .env contents for a setup run

    Secrets already present in `existing` are reused so re-running setup
    does not rotate credentials under running workloads.
    """
    def keep(key, generate):
        return existing.get(key) or generate()

    def choose(value, key, default=""):
        return value or existing.get(key) or default

    values = {
        "OPENCLAW_PREFIX": options.prefix,
        "OPENCLAW_NAMESPACE": namespace_for_prefix(options.prefix),
        "CLUSTER_DOMAIN": options.cluster_domain,
        "OPENCLAW_GATEWAY_TOKEN": keep("OPENCLAW_GATEWAY_TOKEN", generate_secret),
        "OPENCLAW_OAUTH_CLIENT_SECRET": keep("OPENCLAW_OAUTH_CLIENT_SECRET", generate_secret),
        "OPENCLAW_OAUTH_COOKIE_SECRET": keep("OPENCLAW_OAUTH_COOKIE_SECRET", generate_cookie_secret),
        "JWT_SECRET": keep("JWT_SECRET", generate_secret),
        "ADMIN_API_KEY": keep("ADMIN_API_KEY", generate_secret),
        "POSTGRES_DB": choose(options.postgres_db, "POSTGRES_DB", "moltbook"),
        "POSTGRES_USER": choose(options.postgres_user, "POSTGRES_USER", "moltbook"),
        "POSTGRES_PASSWORD": options.postgres_password or keep("POSTGRES_PASSWORD", generate_secret),
        "MOLTBOOK_OAUTH_CLIENT_SECRET": keep("MOLTBOOK_OAUTH_CLIENT_SECRET", generate_secret),
        "MOLTBOOK_OAUTH_COOKIE_SECRET": keep("MOLTBOOK_OAUTH_COOKIE_SECRET", generate_cookie_secret),
        "ANTHROPIC_API_KEY": choose(options.anthropic_api_key, "ANTHROPIC_API_KEY"),
        "MODEL_ENDPOINT": choose(options.model_endpoint, "MODEL_ENDPOINT", DEFAULT_MODEL_ENDPOINT),
        "VERTEX_ENABLED": "true" if options.vertex_enabled else existing.get("VERTEX_ENABLED", "false"),
        "GOOGLE_CLOUD_PROJECT": choose(options.google_cloud_project, "GOOGLE_CLOUD_PROJECT"),
        "GOOGLE_CLOUD_LOCATION": choose(options.google_cloud_location, "GOOGLE_CLOUD_LOCATION"),
        "A2A_ENABLED": "true" if options.with_a2a else "false",
    }

    if options.with_a2a:
        values.update({
            "KEYCLOAK_URL": choose(options.keycloak_url, "KEYCLOAK_URL",
                                   default_keycloak_url(options.cluster_domain)),
            "KEYCLOAK_REALM": choose(options.keycloak_realm, "KEYCLOAK_REALM", DEFAULT_REALM),
            "KEYCLOAK_ADMIN_USERNAME": choose(options.keycloak_admin_username, "KEYCLOAK_ADMIN_USERNAME",
                                              DEFAULT_ADMIN_USERNAME),
            "KEYCLOAK_ADMIN_PASSWORD": choose(options.keycloak_admin_password, "KEYCLOAK_ADMIN_PASSWORD",
                                              DEFAULT_ADMIN_PASSWORD),
        })
    return values

class PlatformSetup:
    """Deploy Moltbook and the OpenClaw gateway, optionally followed by the agents"""

    def __init__(self, client, layout: RepoLayout, k8s_mode: bool = False):
        self.client = client
        self.layout = layout
        self.k8s_mode = k8s_mode

    def run(self, options: SetupOptions, skip_agents: bool = False,
            agent_name: Optional[str] = None) -> WorkflowReport:
        report = WorkflowReport(name="setup")

        existing = load_env(self.layout.env_file, use_process_env=False)
        values = build_setup_values(existing, options)
        write_env(self.layout.env_file, values)
        env = load_env(self.layout.env_file)
        namespace = env.namespace
        report.details["namespace"] = namespace

        logger.info("Rendering templates...")
        report.generated.extend(
            render_tree(self.layout.template_roots, env.as_template_variables(), PLATFORM_TEMPLATE_VARIABLES)
        )

        writer = OverlayWriter(self.layout, env, self.k8s_mode)
        report.generated.extend(writer.write_all())

        for ns in (namespace, MOLTBOOK_NAMESPACE):
            if not self.client.ensure_namespace(ns):
                raise DeployError(f"Could not create namespace {ns}")
        logger.success(f"Namespaces ready: {namespace}, {MOLTBOOK_NAMESPACE}")

        collector = self.layout.observability / "moltbook-otel-collector.yaml"
        if collector.is_file():
            apply_file(self.client, report, collector, MOLTBOOK_NAMESPACE, required=False)
        else:
            logger.info("Moltbook OTEL collector config not found (optional)")

        if not self.k8s_mode:
            self._apply_oauthclients(writer, report)

        logger.info("Deploying Moltbook...")
        self._apply_overlay(writer.moltbook_dir, report)
        logger.info("Deploying OpenClaw gateway...")
        self._apply_overlay(writer.openclaw_dir, report)

        if options.with_a2a:
            self._setup_a2a(env, report)

        if not self.client.wait_for_rollout("openclaw", namespace):
            report.warn("OpenClaw is not ready yet, check the deployment status")

        if not skip_agents:
            agents_report = AgentSetup(self.client, self.layout, self.k8s_mode).run(agent_name)
            report.applied.extend(agents_report.applied)
            report.generated.extend(agents_report.generated)
            report.warnings.extend(agents_report.warnings)
            report.details.update(agents_report.details)

        report.details["openclaw_url"] = self._route_url("openclaw", namespace)
        report.details["moltbook_frontend_url"] = self._route_url("moltbook-frontend", MOLTBOOK_NAMESPACE)
        report.details["moltbook_api_url"] = self._route_url("moltbook-api", MOLTBOOK_NAMESPACE)
        return report

    def _route_url(self, name: str, namespace: str) -> str:
        host = self.client.get_route_host(name, namespace)
        return f"https://{host}" if host else ""

    def _apply_oauthclients(self, writer: OverlayWriter, report: WorkflowReport):
        """OAuthClients are cluster-scoped and need cluster-admin; failure only warns"""
        logger.info("Creating OAuthClients (requires cluster-admin)...")
        for path in (writer.openclaw_oauthclient, writer.moltbook_oauthclient):
            if not path.is_file():
                continue
            results = self.client.apply_file(path)
            if all(r.success for r in results):
                report.record(results)
                logger.success(f"OAuthClient from {path.name} created")
            else:
                report.warn(f"Could not create OAuthClient from {path.name} (requires cluster-admin). "
                            f"Ask your cluster admin to run: oc apply -f {path}")

    def _apply_overlay(self, directory, report: WorkflowReport):
        if not report.record(self.client.apply_kustomization(directory)):
            raise DeployError(f"Failed to apply {directory}")
        logger.success(f"Applied {directory.name} overlay")

    def _setup_a2a(self, env: DeployEnv, report: WorkflowReport):
        namespace = env.namespace
        if self.layout.a2a.is_dir():
            logger.info("Deploying A2A components...")
            if not report.record(self.client.apply_kustomization(self.layout.a2a, namespace_override=namespace)):
                raise DeployError("Failed to apply A2A kustomization")
        else:
            report.warn(f"A2A manifests not found at {self.layout.a2a}, skipping")

        if not self.k8s_mode:
            scc = env.get("A2A_SCC", DEFAULT_A2A_SCC)
            if not self.client.create_clusterrolebinding(
                scc_binding_name(namespace),
                f"system:openshift:scc:{scc}",
                OAUTH_PROXY_SERVICE_ACCOUNT,
                namespace,
            ):
                report.warn(f"Could not bind SCC {scc} to {OAUTH_PROXY_SERVICE_ACCOUNT} (requires cluster-admin)")
