from loguru import logger

from ..config.env_file import load_env, DEFAULT_AGENT_NAME, DEFAULT_AGENT_DISPLAY_NAME
from ..config.layout import RepoLayout
from ..agents.registry import build_roster
from ..agents.cron import remove_jobs_for_agents
from ..agents.workspace import WorkspaceInstaller
from .report import WorkflowReport, apply_file, restart_gateway

REMOVABLE_AGENTS = ("philbot", "resource-optimizer")

class AgentRemoval:
    """Remove the add-on agents from the gateway, keeping the default agent, secrets and Moltbook registrations"""

    REQUIRED_KEYS = ("OPENCLAW_PREFIX", "OPENCLAW_NAMESPACE")

    def __init__(self, client, layout: RepoLayout):
        self.client = client
        self.layout = layout

    def run(self) -> WorkflowReport:
        report = WorkflowReport(name="remove-agents")
        env = load_env(self.layout.env_file, required=self.REQUIRED_KEYS)
        namespace = env.namespace
        installer = WorkspaceInstaller(self.client, namespace)

        roster = build_roster(
            env.prefix,
            env.custom_agent_name or DEFAULT_AGENT_NAME,
            env.display_agent_name or DEFAULT_AGENT_DISPLAY_NAME,
        )
        removed = [agent for agent in roster if agent.key in REMOVABLE_AGENTS]

        logger.info("Removing cron jobs...")
        document = installer.read_jobs()
        if document is None:
            logger.info("No cron jobs file found")
        else:
            remaining = remove_jobs_for_agents(document, (agent.agent_id for agent in removed))
            installer.write_jobs(remaining)
            logger.success(f"Removed {len(document.get('jobs', [])) - len(remaining['jobs'])} cron job(s)")

        logger.info("Removing agent workspace directories...")
        for agent in removed:
            if not installer.remove_workspace(agent):
                report.warn(f"Could not remove {agent.workspace}")

        base_config = self.layout.openclaw_base / "openclaw-config-configmap.yaml"
        if base_config.is_file():
            logger.info("Applying base config (default agent only)...")
            apply_file(self.client, report, base_config, namespace)
        else:
            report.warn(f"{base_config} not found, gateway config left unchanged")

        restart_gateway(self.client, namespace, report, strict=False)
        report.details["removed"] = ", ".join(agent.agent_id for agent in removed)
        return report
