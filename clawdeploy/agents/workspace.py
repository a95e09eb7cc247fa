import json
from typing import Any, Dict, List, Optional
from loguru import logger

from ..errors import DeployError
from .registry import AgentSpec, WORKSPACE_ROOT
from .cron import dump_jobs_document

GATEWAY_DEPLOYMENT = "openclaw"
GATEWAY_CONTAINER = "gateway"

SKILLS_DIR = f"{WORKSPACE_ROOT}/skills"
SCRIPTS_DIR = f"{WORKSPACE_ROOT}/scripts"
JOBS_FILE = f"{WORKSPACE_ROOT}/cron/jobs.json"

IDENTITY_FILES = ("AGENTS.md", "agent.json")

def upsert_env_lines(existing: Optional[str], values: Dict[str, str]) -> str:
    """Drop lines assigning any of `values`' keys, then append KEY=value lines"""
    prefixes = tuple(f"{key}=" for key in values)
    lines = [
        line for line in (existing or "").splitlines()
        if line and not line.startswith(prefixes)
    ]
    lines.extend(f"{key}={value}" for key, value in values.items())
    return "\n".join(lines) + "\n"

class WorkspaceInstaller:
    """Installs skills, identities, credentials and cron state into the running gateway pod"""

    def __init__(self, client, namespace: str):
        self.client = client
        self.namespace = namespace

    def _write(self, path: str, content: str, executable: bool = False):
        if not self.client.write_file_in_deployment(
            GATEWAY_DEPLOYMENT, self.namespace, path, content,
            container=GATEWAY_CONTAINER, executable=executable
        ):
            raise DeployError(f"Could not write {path} in deployment/{GATEWAY_DEPLOYMENT}")

    def _read(self, path: str) -> Optional[str]:
        return self.client.read_file_in_deployment(
            GATEWAY_DEPLOYMENT, self.namespace, path, container=GATEWAY_CONTAINER
        )

    def _exec(self, command: List[str]):
        return self.client.exec_in_deployment(
            GATEWAY_DEPLOYMENT, self.namespace, command, container=GATEWAY_CONTAINER
        )

    def install_skill(self, skill_md: str, name: str = "moltbook"):
        self._write(f"{SKILLS_DIR}/{name}/SKILL.md", skill_md)
        self._exec(["chmod", "-R", "775", SKILLS_DIR])
        logger.success(f"{name} skill installed")

    def install_identity(self, agent: AgentSpec, files: Dict[str, str]):
        """Write AGENTS.md / agent.json from the agent's ConfigMap into its workspace"""
        for name in IDENTITY_FILES:
            content = files.get(name)
            if content is None:
                logger.warning(f"{agent.configmap} has no {name}, skipping")
                continue
            self._write(f"{agent.workspace}/{name}", content)
        logger.success(f"  {agent.key} -> workspace-{agent.agent_id}")

    def set_env_vars(self, workspace: str, values: Dict[str, str]):
        """Upsert KEY=value lines in the workspace .env"""
        path = f"{workspace}/.env"
        self._write(path, upsert_env_lines(self._read(path), values))

    def remove_workspace(self, agent: AgentSpec) -> bool:
        result = self._exec(["rm", "-rf", agent.workspace])
        if result.ok:
            logger.info(f"Removed workspace-{agent.agent_id}")
        else:
            logger.warning(f"Could not remove workspace-{agent.agent_id}: {result.stderr.strip()}")
        return result.ok

    def read_jobs(self) -> Optional[Dict[str, Any]]:
        content = self._read(JOBS_FILE)
        if not content:
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable {JOBS_FILE}: {str(e)}")
            return None

    def write_jobs(self, document: Dict[str, Any]):
        self._write(JOBS_FILE, dump_jobs_document(document))

    def write_script(self, name: str, content: str, executable: bool = False):
        self._write(f"{SCRIPTS_DIR}/{name}", content, executable=executable)
