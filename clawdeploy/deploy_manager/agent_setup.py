from typing import Optional, Tuple
from loguru import logger

from ..errors import DeployError
from ..config.env_file import (
    DeployEnv,
    load_env,
    persist_agent_name,
    slugify_agent_name,
    select_agent_model,
    DEFAULT_AGENT_NAME,
    DEFAULT_AGENT_DISPLAY_NAME,
    DEFAULT_MODEL_ENDPOINT,
)
from ..config.layout import RepoLayout
from ..templates.renderer import render_tree, AGENT_TEMPLATE_VARIABLES
from ..agents.registry import build_roster, find_agent
from ..agents.workspace import WorkspaceInstaller, IDENTITY_FILES
from ..agents.moltbook import cleanup_sql, MOLTBOOK_INTERNAL_URL
from ..templates.overlays import MOLTBOOK_NAMESPACE
from .report import WorkflowReport, apply_file, restart_gateway
from .job_updater import JobUpdater

DB_CREDENTIALS_SECRET = "moltbook-db-credentials"
GRANT_ROLES_JOB = "grant-agent-roles"
OPTIMIZER_TOKEN_SECRET = "resource-optimizer-sa-token"
RESOURCE_DEMO_NAMESPACE = "resource-demo"
POSTGRES_POD_SELECTORS = ("app=moltbook-postgresql", "component=database")

def resolve_agent_name(env: DeployEnv, answer: Optional[str] = None) -> Tuple[str, str, bool]:
    """
    Decide the default agent's slug and display name

    Args:
        env: Loaded deployment state
        answer: What the user typed when asked for a name, if anything

    Returns:
        Tuple[str, str, bool]: (slug, display name, whether to save it to .env)
    """
    if env.custom_agent_name:
        return env.custom_agent_name, env.display_agent_name, False
    if answer and answer.strip():
        display = answer.strip()
        slug = slugify_agent_name(display)
        if slug:
            return slug, display, True
    return DEFAULT_AGENT_NAME, DEFAULT_AGENT_DISPLAY_NAME, False

class AgentSetup:
    """Deploy the bundled agents, register them with Moltbook and wire up their workspaces"""

    REQUIRED_KEYS = ("OPENCLAW_PREFIX", "OPENCLAW_NAMESPACE", "POSTGRES_DB", "POSTGRES_USER", "POSTGRES_PASSWORD")

    def __init__(self, client, layout: RepoLayout, k8s_mode: bool = False,
                 job_timeout: int = 60, token_attempts: int = 15):
        self.client = client
        self.layout = layout
        self.k8s_mode = k8s_mode
        self.job_timeout = job_timeout
        self.token_attempts = token_attempts

    def run(self, agent_name: Optional[str] = None) -> WorkflowReport:
        report = WorkflowReport(name="setup-agents")
        env = load_env(self.layout.env_file, required=self.REQUIRED_KEYS)

        custom_name, display_name, persist = resolve_agent_name(env, agent_name)
        if persist:
            persist_agent_name(self.layout.env_file, custom_name, display_name)
            logger.success(f"Agent will be named '{display_name}' (id: {env.prefix}_{custom_name})")
        env.set("SHADOWMAN_CUSTOM_NAME", custom_name)
        env.set("SHADOWMAN_DISPLAY_NAME", display_name)

        namespace = env.namespace
        roster = build_roster(env.prefix, custom_name, display_name)
        logger.info(f"Namespace: {namespace}")
        logger.info(f"Agents:    {', '.join(agent.agent_id for agent in roster)}")

        if not self.client.namespace_exists(namespace):
            raise DeployError(f"Namespace {namespace} not found. Run setup first.")

        self._render_agent_templates(env, report)
        self._apply_agent_manifests(env, roster, report)
        self._cleanup_registrations(env, roster, report)
        self._run_jobs(namespace, [(a.registration_file, a.registration_job) for a in roster], report)
        self._run_jobs(namespace, [("job-grant-roles.yaml", GRANT_ROLES_JOB)], report)
        self._apply_resource_demo(report)

        restart_gateway(self.client, namespace, report)
        self._install_workspaces(namespace, roster, report)

        restart_gateway(self.client, namespace, report)
        jobs_report = JobUpdater(self.client, self.layout, env).run(skip_restart=True)
        report.warnings.extend(jobs_report.warnings)
        report.details.update(jobs_report.details)
        restart_gateway(self.client, namespace, report)

        report.details["agents"] = ", ".join(agent.agent_id for agent in roster)
        return report

    def _render_agent_templates(self, env: DeployEnv, report: WorkflowReport):
        if not env.get("MODEL_ENDPOINT"):
            env.set("MODEL_ENDPOINT", DEFAULT_MODEL_ENDPOINT)
        if not env.get("VERTEX_ENABLED"):
            env.set("VERTEX_ENABLED", "false")
        env.set("DEFAULT_AGENT_MODEL", select_agent_model(env))

        logger.info("Rendering agent templates...")
        report.generated.extend(
            render_tree([self.layout.agents], env.as_template_variables(), AGENT_TEMPLATE_VARIABLES)
        )

    def _apply_agent_manifests(self, env: DeployEnv, roster, report: WorkflowReport):
        namespace = env.namespace

        # Jobs need this RBAC before they are created
        apply_file(self.client, report, self.layout.agent_file("agent-manager-rbac.yaml"))

        if not self.client.create_generic_secret(DB_CREDENTIALS_SECRET, namespace, {
            "database-name": env.get("POSTGRES_DB"),
            "database-user": env.get("POSTGRES_USER"),
            "database-password": env.get("POSTGRES_PASSWORD"),
        }):
            raise DeployError(f"Could not create secret {DB_CREDENTIALS_SECRET}")

        if not self.k8s_mode:
            apply_file(self.client, report, self.layout.agent_file("agents-config-patch.yaml"), namespace)

        # After the config patch: the base kustomization ships a default shadowman-agent
        for agent in roster:
            apply_file(self.client, report, self.layout.agent_file(agent.agent_file), namespace)

        logger.info("Deploying skills (kustomize)...")
        if not report.record(self.client.apply_kustomization(self.layout.skills, namespace_override=namespace)):
            raise DeployError("Failed to apply skills kustomization")
        logger.success("Skills deployed")

    def _cleanup_registrations(self, env: DeployEnv, roster, report: WorkflowReport):
        """Drop previous registrations from the Moltbook DB so re-runs register cleanly"""
        logger.info("Cleaning up any existing agent registrations in Moltbook DB...")
        pod = self.client.find_pod_by_labels(MOLTBOOK_NAMESPACE, POSTGRES_POD_SELECTORS, name_contains="postgres")
        if not pod:
            report.warn("PostgreSQL pod not found, skipping pre-cleanup (first deploy?)")
            return

        sql = cleanup_sql(agent.agent_id for agent in roster)
        result = self.client.exec_in_pod(
            pod, MOLTBOOK_NAMESPACE,
            ["psql", "-U", env.get("POSTGRES_USER"), "-d", env.get("POSTGRES_DB"), "-c", sql],
        )
        if result.ok:
            logger.success("Pre-registration cleanup done")
        else:
            report.warn("Could not clean up existing agents (table may not exist yet)")

    def _run_jobs(self, namespace: str, jobs, report: WorkflowReport):
        """Jobs are immutable: delete the old ones, apply, then wait for each"""
        for _, job_name in jobs:
            self.client.delete_resource("batch/v1", "Job", job_name, namespace)
        for filename, _ in jobs:
            apply_file(self.client, report, self.layout.agent_file(filename), namespace)
        for _, job_name in jobs:
            if self.client.wait_for_job_complete(job_name, namespace, self.job_timeout):
                logger.success(f"job/{job_name} complete")
            else:
                report.warn(f"job/{job_name} still running")

    def _apply_resource_demo(self, report: WorkflowReport):
        logger.info("Setting up resource-optimizer demo namespace...")
        if not self.client.ensure_namespace(RESOURCE_DEMO_NAMESPACE):
            raise DeployError(f"Could not create namespace {RESOURCE_DEMO_NAMESPACE}")
        apply_file(self.client, report, self.layout.agent_file("resource-optimizer-rbac.yaml"))
        for demo in sorted(self.layout.agents.glob("demo-*.yaml")):
            apply_file(self.client, report, demo)

    def _install_workspaces(self, namespace: str, roster, report: WorkflowReport):
        installer = WorkspaceInstaller(self.client, namespace)

        logger.info("Installing moltbook skill into OpenClaw pod...")
        skill = self.client.get_configmap_value("moltbook-skill", namespace, "SKILL.md")
        if skill:
            installer.install_skill(skill)
        else:
            report.warn("moltbook-skill ConfigMap has no SKILL.md")

        logger.info("Installing agent identity files into workspaces...")
        for agent in roster:
            files = {
                name: self.client.get_configmap_value(agent.configmap, namespace, name)
                for name in IDENTITY_FILES
            }
            installer.install_identity(agent, files)

        for agent in roster:
            api_key = self.client.get_secret_value(agent.key_secret, namespace, "api_key")
            if not api_key:
                report.warn(f"{agent.display_name} Moltbook key not found, registration may have failed")
                continue
            installer.set_env_vars(agent.workspace, {
                "MOLTBOOK_API_KEY": api_key,
                "MOLTBOOK_API_URL": MOLTBOOK_INTERNAL_URL,
            })
            logger.success(f"{agent.display_name} Moltbook credentials injected")

        logger.info("Injecting resource-optimizer ServiceAccount token...")
        token = self.client.wait_for_secret_value(
            OPTIMIZER_TOKEN_SECRET, namespace, "token", attempts=self.token_attempts, interval=2
        )
        if token:
            optimizer = find_agent(roster, "resource-optimizer")
            installer.set_env_vars(optimizer.workspace, {"OC_TOKEN": token})
            logger.success("Resource-optimizer SA token injected")
        else:
            report.warn("Could not get SA token, resource-optimizer won't have K8s API access. "
                        "Run setup-optimizer-rbac after deployment.")
