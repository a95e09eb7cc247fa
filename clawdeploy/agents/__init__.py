"""
Agent roster, cron jobs and in-pod workspace management
"""

from .registry import AgentSpec, build_roster, find_agent, WORKSPACE_ROOT
from .cron import (
    build_jobs_document,
    dump_jobs_document,
    remove_jobs_for_agents,
    render_resource_report_script,
)
from .workspace import WorkspaceInstaller, upsert_env_lines, GATEWAY_DEPLOYMENT, GATEWAY_CONTAINER
from .moltbook import (
    MoltbookClient,
    Submolt,
    cleanup_sql,
    DEFAULT_SUBMOLTS,
    MOLTBOOK_INTERNAL_URL,
    SUBMOLT_CREATED,
    SUBMOLT_EXISTS,
    SUBMOLT_FAILED,
)

__all__ = [
    "AgentSpec",
    "build_roster",
    "find_agent",
    "WORKSPACE_ROOT",
    "build_jobs_document",
    "dump_jobs_document",
    "remove_jobs_for_agents",
    "render_resource_report_script",
    "WorkspaceInstaller",
    "upsert_env_lines",
    "GATEWAY_DEPLOYMENT",
    "GATEWAY_CONTAINER",
    "MoltbookClient",
    "Submolt",
    "cleanup_sql",
    "DEFAULT_SUBMOLTS",
    "MOLTBOOK_INTERNAL_URL",
    "SUBMOLT_CREATED",
    "SUBMOLT_EXISTS",
    "SUBMOLT_FAILED",
]
