from dataclasses import dataclass
from typing import List

WORKSPACE_ROOT = "/home/node/.openclaw"

@dataclass
class AgentSpec:
    """A roster entry: how one agent is registered and where it lives in the gateway"""
    key: str
    agent_id: str
    display_name: str
    configmap: str
    registration_job: str
    key_secret: str
    agent_file: str
    registration_file: str

    @property
    def workspace(self) -> str:
        return f"{WORKSPACE_ROOT}/workspace-{self.agent_id}"

def build_roster(prefix: str, custom_name: str, display_name: str) -> List[AgentSpec]:
    """
    Build the three bundled agents for a deployment

    Args:
        prefix: Deployment prefix (OPENCLAW_PREFIX)
        custom_name: Slug of the default agent, e.g. "shadowman"
        display_name: Human readable name of the default agent

    Returns:
        List[AgentSpec]: default agent, PhilBot and Resource Optimizer
    """
    return [
        AgentSpec(
            key="shadowman",
            agent_id=f"{prefix}_{custom_name}",
            display_name=display_name,
            configmap="shadowman-agent",
            registration_job="register-shadowman",
            key_secret=f"{prefix}-{custom_name}-moltbook-key",
            agent_file="shadowman-agent.yaml",
            registration_file="register-shadowman-job.yaml",
        ),
        AgentSpec(
            key="philbot",
            agent_id=f"{prefix}_philbot",
            display_name="PhilBot",
            configmap="philbot-agent",
            registration_job="register-philbot",
            key_secret="philbot-moltbook-key",
            agent_file="philbot-agent.yaml",
            registration_file="register-philbot-job.yaml",
        ),
        AgentSpec(
            key="resource-optimizer",
            agent_id=f"{prefix}_resource_optimizer",
            display_name="Resource Optimizer",
            configmap="resource-optimizer-agent",
            registration_job="register-resource-optimizer",
            key_secret="resource-optimizer-moltbook-key",
            agent_file="resource-optimizer-agent.yaml",
            registration_file="register-resource-optimizer-job.yaml",
        ),
    ]

def find_agent(roster: List[AgentSpec], key: str) -> AgentSpec:
    for agent in roster:
        if agent.key == key:
            return agent
    raise KeyError(key)
