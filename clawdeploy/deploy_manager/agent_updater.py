from loguru import logger

from ..errors import DeployError
from ..config.env_file import load_env, DEFAULT_AGENT_NAME, DEFAULT_AGENT_DISPLAY_NAME
from ..config.layout import RepoLayout
from ..agents.registry import build_roster, find_agent
from ..agents.cron import build_jobs_document, remove_jobs_for_agents
from ..agents.workspace import WorkspaceInstaller, IDENTITY_FILES
from .report import WorkflowReport, apply_file, require_file, restart_gateway

class AgentUpdater:
    """Push one agent's edited ConfigMap into the running gateway without a full setup-agents"""

    REQUIRED_KEYS = ("OPENCLAW_PREFIX", "OPENCLAW_NAMESPACE")

    def __init__(self, client, layout: RepoLayout):
        self.client = client
        self.layout = layout

    def run(self, agent_key: str, skip_restart: bool = False) -> WorkflowReport:
        report = WorkflowReport(name="update-agent")
        env = load_env(self.layout.env_file, required=self.REQUIRED_KEYS)
        namespace = env.namespace
        custom_name = env.custom_agent_name or DEFAULT_AGENT_NAME
        roster = build_roster(
            env.prefix, custom_name, env.display_agent_name or DEFAULT_AGENT_DISPLAY_NAME
        )
        try:
            agent = find_agent(roster, agent_key)
        except KeyError:
            choices = ", ".join(a.key for a in roster)
            raise DeployError(f"Unknown agent '{agent_key}'. Choose one of: {choices}")

        if not self.client.namespace_exists(namespace):
            raise DeployError(f"Namespace {namespace} not found. Run setup first.")

        logger.info(f"Applying {agent.agent_file}...")
        manifest = require_file(self.layout.agent_file(agent.agent_file), "run setup-agents first")
        apply_file(self.client, report, manifest, namespace)

        logger.info(f"Updating identity files in workspace-{agent.agent_id}...")
        files = {
            name: self.client.get_configmap_value(agent.configmap, namespace, name)
            for name in IDENTITY_FILES
        }
        if all(content is None for content in files.values()):
            raise DeployError(f"ConfigMap {agent.configmap} has none of {', '.join(IDENTITY_FILES)}")
        WorkspaceInstaller(self.client, namespace).install_identity(agent, files)

        self._refresh_jobs(env.prefix, custom_name, agent, namespace, report)

        if not skip_restart:
            restart_gateway(self.client, namespace, report)
        report.details["agent"] = agent.agent_id
        return report

    def _refresh_jobs(self, prefix: str, custom_name: str, agent, namespace: str, report: WorkflowReport):
        """Replace the agent's cron jobs, leaving every other job as it is"""
        installer = WorkspaceInstaller(self.client, namespace)
        fresh = [job for job in build_jobs_document(prefix, custom_name)["jobs"]
                 if job.get("agentId") == agent.agent_id]

        document = installer.read_jobs() or {"version": 1, "jobs": []}
        updated = remove_jobs_for_agents(document, [agent.agent_id])
        updated["jobs"].extend(fresh)
        installer.write_jobs(updated)

        report.details["jobs"] = ", ".join(job["id"] for job in fresh) or "none"
        logger.success(f"{len(fresh)} cron job(s) refreshed for {agent.agent_id}")
