"""
Deployment workflows
"""

from .report import WorkflowReport
from .platform_setup import PlatformSetup, SetupOptions, build_setup_values, namespace_for_prefix
from .agent_setup import AgentSetup, resolve_agent_name
from .job_updater import JobUpdater
from .teardown import Teardown
from .agent_removal import AgentRemoval
from .agent_updater import AgentUpdater
from .optimizer_rbac import OptimizerRbacSetup
from .submolts import SubmoltCreator

__all__ = [
    "WorkflowReport",
    "PlatformSetup",
    "SetupOptions",
    "build_setup_values",
    "namespace_for_prefix",
    "AgentSetup",
    "resolve_agent_name",
    "JobUpdater",
    "Teardown",
    "AgentRemoval",
    "AgentUpdater",
    "OptimizerRbacSetup",
    "SubmoltCreator",
]
