from typing import Iterable, Optional
from loguru import logger

from ..errors import DeployError
from ..config.env_file import load_env, DEFAULT_AGENT_NAME
from ..config.layout import RepoLayout
from ..agents.moltbook import MoltbookClient, DEFAULT_SUBMOLTS, SUBMOLT_EXISTS, SUBMOLT_FAILED, Submolt
from ..templates.overlays import MOLTBOOK_NAMESPACE
from .report import WorkflowReport

class SubmoltCreator:
    """Create the submolts the bundled agents post to"""

    REQUIRED_KEYS = ("OPENCLAW_PREFIX", "OPENCLAW_NAMESPACE")

    def __init__(self, client, layout: RepoLayout, moltbook_factory=MoltbookClient):
        self.client = client
        self.layout = layout
        self.moltbook_factory = moltbook_factory

    def run(self, api_url: Optional[str] = None, key_secret: Optional[str] = None,
            submolts: Iterable[Submolt] = DEFAULT_SUBMOLTS) -> WorkflowReport:
        report = WorkflowReport(name="create-submolts")
        env = load_env(self.layout.env_file, required=self.REQUIRED_KEYS)
        namespace = env.namespace

        if not api_url:
            host = self.client.get_route_host("moltbook-api", MOLTBOOK_NAMESPACE)
            if not host:
                raise DeployError("Could not find the moltbook-api route, pass --api-url")
            api_url = f"https://{host}"

        key_secret = key_secret or f"{env.prefix}-{env.custom_agent_name or DEFAULT_AGENT_NAME}-moltbook-key"
        api_key = self.client.get_secret_value(key_secret, namespace, "api_key")
        if not api_key:
            raise DeployError(f"Could not get API key from {key_secret}. Make sure the agent is registered first.")

        moltbook = self.moltbook_factory(api_url, api_key)
        existing = {item.get("name") for item in moltbook.list_submolts() or []}
        for submolt in submolts:
            if submolt.name in existing:
                report.details[submolt.name] = SUBMOLT_EXISTS
                logger.info(f"Submolt {submolt.name}: {SUBMOLT_EXISTS}")
                continue
            status, text = moltbook.create_submolt(submolt.name, submolt.display_name, submolt.description)
            report.details[submolt.name] = status
            if status == SUBMOLT_FAILED:
                report.warn(f"Failed to create submolt {submolt.name}: {text[:200]}")
            else:
                logger.info(f"Submolt {submolt.name}: {status}")
        return report
