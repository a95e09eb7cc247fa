import os
import re
from pathlib import Path
from typing import Dict, Iterable, List
from loguru import logger

TEMPLATE_SUFFIX = ".envsubst"

# Variables substituted in agent templates; anything else containing `$` is
# left alone so in-pod shell snippets survive rendering.
AGENT_TEMPLATE_VARIABLES = (
    "CLUSTER_DOMAIN",
    "OPENCLAW_PREFIX",
    "OPENCLAW_NAMESPACE",
    "OPENCLAW_GATEWAY_TOKEN",
    "OPENCLAW_OAUTH_CLIENT_SECRET",
    "OPENCLAW_OAUTH_COOKIE_SECRET",
    "JWT_SECRET",
    "POSTGRES_DB",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "MOLTBOOK_OAUTH_CLIENT_SECRET",
    "MOLTBOOK_OAUTH_COOKIE_SECRET",
    "ANTHROPIC_API_KEY",
    "SHADOWMAN_CUSTOM_NAME",
    "SHADOWMAN_DISPLAY_NAME",
    "MODEL_ENDPOINT",
    "DEFAULT_AGENT_MODEL",
    "GOOGLE_CLOUD_PROJECT",
    "GOOGLE_CLOUD_LOCATION",
)

PLATFORM_TEMPLATE_VARIABLES = AGENT_TEMPLATE_VARIABLES + (
    "ADMIN_API_KEY",
    "VERTEX_ENABLED",
    "A2A_ENABLED",
    "KEYCLOAK_URL",
    "KEYCLOAK_REALM",
    "SPIFFE_TRUST_DOMAIN",
)

_VARIABLE_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

def render_template(text: str, variables: Dict[str, str], allowed: Iterable[str]) -> str:
    """
    Substitute `$NAME` and `${NAME}` references, envsubst SHELL-FORMAT style

    Args:
        text: Template text
        variables: Values to substitute
        allowed: Only these names are substituted; unset ones become ""

    Returns:
        str: Rendered text
    """
    allowed = set(allowed)

    def replace(match):
        name = match.group(1) or match.group(2)
        if name not in allowed:
            return match.group(0)
        value = variables.get(name)
        return "" if value is None else str(value)

    return _VARIABLE_PATTERN.sub(replace, text)

def find_templates(roots: Iterable[Path]) -> List[Path]:
    """Find all *.envsubst templates below the given directories"""
    templates = []
    for root in roots:
        root = Path(root)
        if not root.is_dir():
            continue
        for dirpath, _dirs, files in os.walk(root):
            for name in sorted(files):
                if name.endswith(TEMPLATE_SUFFIX):
                    templates.append(Path(dirpath) / name)
    return sorted(templates)

def rendered_path(template: Path) -> Path:
    return template.with_name(template.name[: -len(TEMPLATE_SUFFIX)])

def render_tree(roots: Iterable[Path], variables: Dict[str, str], allowed: Iterable[str]) -> List[Path]:
    """Render every template below `roots` next to itself, without the suffix"""
    allowed = tuple(allowed)
    generated = []
    for template in find_templates(roots):
        target = rendered_path(template)
        content = template.read_text(encoding="utf-8")
        target.write_text(render_template(content, variables, allowed), encoding="utf-8")
        logger.success(f"Generated {target.name}")
        generated.append(target)
    return generated

def cleanup_generated(roots: Iterable[Path]) -> int:
    """Remove files generated from templates; returns how many were removed"""
    removed = 0
    for template in find_templates(roots):
        target = rendered_path(template)
        if target.is_file():
            target.unlink()
            removed += 1
    return removed
