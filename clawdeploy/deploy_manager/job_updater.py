from typing import Optional
from loguru import logger

from ..config.env_file import DeployEnv, load_env
from ..config.layout import RepoLayout
from ..agents.registry import build_roster, find_agent
from ..agents.cron import build_jobs_document, render_resource_report_script
from ..agents.workspace import WorkspaceInstaller
from .report import WorkflowReport, require_file, restart_gateway

class JobUpdater:
    """Refresh cron jobs and the resource-report script inside the gateway"""

    REQUIRED_KEYS = ("OPENCLAW_PREFIX", "OPENCLAW_NAMESPACE", "SHADOWMAN_CUSTOM_NAME")

    def __init__(self, client, layout: RepoLayout, env: Optional[DeployEnv] = None):
        self.client = client
        self.layout = layout
        self.env = env

    def run(self, skip_restart: bool = False) -> WorkflowReport:
        env = self.env or load_env(self.layout.env_file, required=self.REQUIRED_KEYS)
        env.require(*self.REQUIRED_KEYS)

        report = WorkflowReport(name="update-jobs")
        namespace = env.namespace
        installer = WorkspaceInstaller(self.client, namespace)
        roster = build_roster(env.prefix, env.custom_agent_name, env.display_agent_name)
        optimizer = find_agent(roster, "resource-optimizer")

        logger.info("Writing resource-optimizer report script to pod...")
        installer.write_script(
            "resource-report.sh",
            render_resource_report_script(optimizer.agent_id),
            executable=True,
        )
        logger.success("Resource-optimizer report script deployed")

        template = require_file(self.layout.resource_report_job_template, "render the templates first")
        logger.info("Copying resource-report job template to pod...")
        installer.write_script("job-template.yaml", template.read_text(encoding="utf-8"))
        logger.success("Job template deployed")

        logger.info("Writing cron jobs...")
        document = build_jobs_document(env.prefix, env.custom_agent_name)
        installer.write_jobs(document)
        report.details["jobs"] = ", ".join(job["id"] for job in document["jobs"])
        logger.success(f"{len(document['jobs'])} cron jobs written")

        if not skip_restart:
            restart_gateway(self.client, namespace, report)
        return report
