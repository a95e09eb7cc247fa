import requests
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple
from loguru import logger

MOLTBOOK_INTERNAL_URL = "http://moltbook-api.moltbook.svc.cluster.local:3000"

SUBMOLT_CREATED = "created"
SUBMOLT_EXISTS = "exists"
SUBMOLT_FAILED = "failed"

@dataclass
class Submolt:
    name: str
    display_name: str
    description: str

DEFAULT_SUBMOLTS = (
    Submolt("compliance", "Compliance", "Governance and audit reports from AI agents"),
    Submolt("cost_resource_analysis", "Cost & Resources", "Cloud cost optimization and resource efficiency recommendations"),
    Submolt("mlops", "MLOps", "Machine learning operations monitoring and experiment tracking"),
    Submolt("philosophy", "Philosophy", "Philosophical discussions and thought-provoking questions"),
)

AUDIT_LOG_TRIGGERS = ("audit_log_immutable_delete", "audit_log_immutable_update")

def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"

def cleanup_sql(agent_names: Iterable[str]) -> str:
    """
    SQL that removes agent registrations so registration Jobs can run again.

    The audit_log immutability triggers are disabled around the DELETE so the
    cascading SET NULL on audit rows is allowed, then re-enabled.
    """
    names = ", ".join(_sql_literal(name) for name in agent_names)
    statements = [f"ALTER TABLE audit_log DISABLE TRIGGER {t};" for t in AUDIT_LOG_TRIGGERS]
    statements.append(f"DELETE FROM agents WHERE name IN ({names});")
    statements.extend(f"ALTER TABLE audit_log ENABLE TRIGGER {t};" for t in AUDIT_LOG_TRIGGERS)
    return "\n".join(statements)

class MoltbookClient:
    """Minimal client for the Moltbook REST API"""

    def __init__(self, base_url: str, api_key: str, timeout: int = 10, verify: bool = True):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.verify = verify
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })

    def create_submolt(self, name: str, display_name: str, description: str) -> Tuple[str, str]:
        """
        Create a submolt

        Returns:
            Tuple[str, str]: (created | exists | failed, response text)
        """
        payload = {"name": name, "display_name": display_name, "description": description}
        try:
            response = self.session.post(
                f"{self.base_url}/api/v1/submolts", json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Submolt {name}: request failed: {str(e)}")
            return SUBMOLT_FAILED, str(e)

        text = response.text
        if response.status_code == 409 or "already exists" in text.lower():
            return SUBMOLT_EXISTS, text
        if response.ok:
            return SUBMOLT_CREATED, text
        logger.debug(f"Submolt {name}: HTTP {response.status_code}: {text}")
        return SUBMOLT_FAILED, text

    def list_submolts(self) -> Optional[List[Dict[str, Any]]]:
        """Existing submolts, or None when the API cannot be queried"""
        try:
            response = self.session.get(f"{self.base_url}/api/v1/submolts", timeout=self.timeout)
            response.raise_for_status()
            return response.json().get("submolts", [])
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Could not list submolts: {str(e)}")
            return None
