import os
import re
import base64
import secrets
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional
from dotenv import dotenv_values, set_key
from loguru import logger

from ..errors import DeployError

DEFAULT_MODEL_ENDPOINT = "http://vllm.openclaw-llms.svc.cluster.local/v1"
DEFAULT_AGENT_NAME = "shadowman"
DEFAULT_AGENT_DISPLAY_NAME = "Shadowman"

ANTHROPIC_MODEL = "anthropic/claude-sonnet-4-5"
VERTEX_MODEL = "google-vertex/gemini-2.5-pro"
IN_CLUSTER_MODEL = "nerc/openai/gpt-oss-20b"

ENV_HEADER = (
    "# OpenClaw + Moltbook deployment state (generated by clawdeploy setup)\n"
    "# Contains real secrets - NEVER commit this file!\n"
)

# Keys written by `setup`, in the order they appear in a fresh .env
SETUP_KEYS = (
    "OPENCLAW_PREFIX",
    "OPENCLAW_NAMESPACE",
    "CLUSTER_DOMAIN",
    "OPENCLAW_GATEWAY_TOKEN",
    "OPENCLAW_OAUTH_CLIENT_SECRET",
    "OPENCLAW_OAUTH_COOKIE_SECRET",
    "JWT_SECRET",
    "ADMIN_API_KEY",
    "POSTGRES_DB",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "MOLTBOOK_OAUTH_CLIENT_SECRET",
    "MOLTBOOK_OAUTH_COOKIE_SECRET",
    "ANTHROPIC_API_KEY",
    "MODEL_ENDPOINT",
    "VERTEX_ENABLED",
    "GOOGLE_CLOUD_PROJECT",
    "GOOGLE_CLOUD_LOCATION",
    "A2A_ENABLED",
    "KEYCLOAK_URL",
    "KEYCLOAK_REALM",
    "KEYCLOAK_ADMIN_USERNAME",
    "KEYCLOAK_ADMIN_PASSWORD",
)

# Keys the process environment may override on load
OVERRIDABLE_KEYS = SETUP_KEYS + (
    "SHADOWMAN_CUSTOM_NAME",
    "SHADOWMAN_DISPLAY_NAME",
    "SPIFFE_TRUST_DOMAIN",
    "A2A_SCC",
)

@dataclass
class DeployEnv:
    """Typed view over the flat .env key/value pairs"""
    values: Dict[str, str] = field(default_factory=dict)
    path: Optional[Path] = None

    def get(self, key: str, default: str = "") -> str:
        value = self.values.get(key)
        return value if value else default

    def require(self, *keys: str):
        for key in keys:
            if not self.get(key):
                raise DeployError(f"{key} not set in .env. Run setup first (or add it manually).")

    def set(self, key: str, value: str):
        self.values[key] = value

    @property
    def prefix(self) -> str:
        return self.get("OPENCLAW_PREFIX")

    @property
    def namespace(self) -> str:
        return self.get("OPENCLAW_NAMESPACE")

    @property
    def cluster_domain(self) -> str:
        return self.get("CLUSTER_DOMAIN")

    @property
    def custom_agent_name(self) -> str:
        return self.get("SHADOWMAN_CUSTOM_NAME")

    @property
    def display_agent_name(self) -> str:
        return self.get("SHADOWMAN_DISPLAY_NAME") or self.custom_agent_name

    @property
    def a2a_enabled(self) -> bool:
        return self.get("A2A_ENABLED", "false").lower() == "true"

    def as_template_variables(self) -> Dict[str, str]:
        return dict(self.values)

def load_env(path: Path, required: Iterable[str] = (), use_process_env: bool = True) -> DeployEnv:
    """
    Load deployment state from a .env file

    Args:
        path: Path to the .env file
        required: Keys that must be present and non-empty
        use_process_env: Let process environment variables override file values

    Returns:
        DeployEnv: Loaded values
    """
    required = tuple(required)
    path = Path(path)
    values: Dict[str, str] = {}

    if path.is_file():
        values = {k: v for k, v in dotenv_values(path).items() if v is not None}
        logger.debug(f"Loaded {len(values)} keys from {path}")
    elif required:
        raise DeployError(f"No .env file found at {path}. Run setup first.")

    if use_process_env:
        for key in set(values) | set(required) | set(OVERRIDABLE_KEYS):
            if os.environ.get(key):
                values[key] = os.environ[key]

    env = DeployEnv(values=values, path=path)
    env.require(*required)
    return env

def write_env(path: Path, values: Dict[str, str]) -> Path:
    """Write (or update) keys in the .env file, preserving unrelated lines"""
    path = Path(path)
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(ENV_HEADER, encoding="utf-8")
        os.chmod(path, 0o600)

    for key, value in values.items():
        set_key(str(path), key, value if value is not None else "", quote_mode="always")

    logger.info(f"Saved {len(values)} settings to {path}")
    return path

def persist_agent_name(path: Path, custom_name: str, display_name: str):
    """Save the custom default agent name so later runs don't prompt again"""
    write_env(path, {
        "SHADOWMAN_CUSTOM_NAME": custom_name,
        "SHADOWMAN_DISPLAY_NAME": display_name,
    })

def generate_secret() -> str:
    """Random base64-encoded secret (32 bytes of entropy)"""
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")

def generate_cookie_secret() -> str:
    """32 alphanumeric characters; oauth-proxy needs exactly 16, 24 or 32 bytes"""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(32))

def slugify_agent_name(name: str) -> str:
    slug = name.lower().replace(" ", "_")
    return re.sub(r"[^a-z0-9_]", "", slug)

def sanitize_prefix(name: str) -> str:
    """Turn a cluster username into something usable as a namespace prefix"""
    prefix = re.sub(r"[^a-z0-9-]", "-", name.lower())
    prefix = re.sub(r"-+", "-", prefix).strip("-")
    return prefix[:40] or "openclaw"

def select_agent_model(env: DeployEnv) -> str:
    """Default agent model: Anthropic > Google Vertex > in-cluster"""
    if env.get("ANTHROPIC_API_KEY"):
        return ANTHROPIC_MODEL
    if env.get("VERTEX_ENABLED", "false").lower() == "true":
        logger.info("Using Google Vertex (Gemini) as default agent model")
        return VERTEX_MODEL
    logger.info(
        f"No Anthropic API key or Vertex - agents will use in-cluster model "
        f"({env.get('MODEL_ENDPOINT', DEFAULT_MODEL_ENDPOINT)})"
    )
    return IN_CLUSTER_MODEL
