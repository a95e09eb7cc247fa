import copy
import json
import time
import yaml
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..templates.renderer import render_template

ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"
CRON_JOBS_ASSET = ASSETS_DIR / "cron-jobs.yaml"
RESOURCE_REPORT_ASSET = ASSETS_DIR / "resource-report.sh"

CRON_TEMPLATE_VARIABLES = ("OPENCLAW_PREFIX", "SHADOWMAN_CUSTOM_NAME")

def build_jobs_document(prefix: str, custom_name: str, now_ms: Optional[int] = None) -> Dict[str, Any]:
    """
    Build the gateway's cron/jobs.json document

    Args:
        prefix: Deployment prefix
        custom_name: Slug of the default agent
        now_ms: Creation timestamp in epoch milliseconds, defaults to now

    Returns:
        Dict: {"version": 1, "jobs": [...]}
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    text = CRON_JOBS_ASSET.read_text(encoding="utf-8")
    rendered = render_template(
        text,
        {"OPENCLAW_PREFIX": prefix, "SHADOWMAN_CUSTOM_NAME": custom_name},
        CRON_TEMPLATE_VARIABLES,
    )
    document = yaml.safe_load(rendered)

    for job in document["jobs"]:
        job["createdAtMs"] = now_ms
        job["updatedAtMs"] = now_ms

    return {"version": document.get("version", 1), "jobs": document["jobs"]}

def remove_jobs_for_agents(document: Dict[str, Any], agent_ids: Iterable[str]) -> Dict[str, Any]:
    """Copy of a jobs document without the jobs owned by the given agents"""
    agent_ids = set(agent_ids)
    result = copy.deepcopy(document)
    result["jobs"] = [job for job in result.get("jobs", []) if job.get("agentId") not in agent_ids]
    return result

def dump_jobs_document(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"

def render_resource_report_script(agent_id: str) -> str:
    return RESOURCE_REPORT_ASSET.read_text(encoding="utf-8").replace("AGENT_ID", agent_id)
