from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
from loguru import logger

from ..errors import DeployError
from ..openshift_client.client import ApplyResult

@dataclass
class WorkflowReport:
    """What a workflow did: applied resources, generated files and non-fatal warnings"""
    name: str
    applied: List[ApplyResult] = field(default_factory=list)
    generated: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    details: Dict[str, str] = field(default_factory=dict)

    def warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)

    def record(self, results: List[ApplyResult]) -> bool:
        self.applied.extend(results)
        return all(r.success for r in results)

    @property
    def failed(self) -> List[ApplyResult]:
        return [r for r in self.applied if not r.success]

    @property
    def success(self) -> bool:
        return not self.failed

def require_file(path: Path, hint: Optional[str] = None) -> Path:
    if not path.is_file():
        message = f"Required file not found: {path}"
        if hint:
            message += f" ({hint})"
        raise DeployError(message)
    return path

def restart_gateway(client, namespace: str, report: WorkflowReport, strict: bool = True,
                    deployment: str = "openclaw", timeout: int = 120):
    """Rollout-restart the gateway and wait for it; strict turns failure into DeployError"""
    logger.info(f"Restarting deployment/{deployment} in {namespace}...")
    if client.rollout_restart(deployment, namespace) and client.wait_for_rollout(deployment, namespace, timeout):
        logger.success(f"deployment/{deployment} ready")
        return True
    message = f"deployment/{deployment} did not become ready within {timeout}s"
    if strict:
        raise DeployError(message)
    report.warn(message)
    return False

def apply_file(client, report: WorkflowReport, path: Path, namespace: Optional[str] = None,
               required: bool = True) -> bool:
    """Apply one manifest file; with `required`, any failed resource aborts the workflow"""
    if required:
        require_file(path)
    elif not path.is_file():
        report.warn(f"{path.name} not found, skipping")
        return False

    results = client.apply_file(path, namespace)
    ok = report.record(results)
    if not ok and required:
        errors = "; ".join(f"{r.resource_kind}/{r.resource_name}: {r.error_message}" for r in results if not r.success)
        raise DeployError(f"Failed to apply {path.name}: {errors}")
    if ok:
        logger.success(f"Applied {path.name}")
    return ok
