from loguru import logger

from ..errors import DeployError
from ..config.env_file import load_env, DEFAULT_AGENT_NAME, DEFAULT_AGENT_DISPLAY_NAME
from ..config.layout import RepoLayout
from ..agents.registry import build_roster, find_agent
from ..agents.workspace import WorkspaceInstaller
from ..openshift_client.access_check import (
    ServiceAccountAccessChecker,
    METRICS_AVAILABLE,
    METRICS_NOT_INSTALLED,
)
from .report import WorkflowReport, apply_file
from .agent_setup import OPTIMIZER_TOKEN_SECRET, RESOURCE_DEMO_NAMESPACE

class OptimizerRbacSetup:
    """Grant the resource-optimizer read-only access to resource-demo and verify it"""

    REQUIRED_KEYS = ("OPENCLAW_PREFIX", "OPENCLAW_NAMESPACE")

    def __init__(self, client, layout: RepoLayout, checker_factory=ServiceAccountAccessChecker,
                 token_attempts: int = 30):
        self.client = client
        self.layout = layout
        self.checker_factory = checker_factory
        self.token_attempts = token_attempts

    def run(self) -> WorkflowReport:
        report = WorkflowReport(name="setup-optimizer-rbac")
        env = load_env(self.layout.env_file, required=self.REQUIRED_KEYS)
        namespace = env.namespace

        logger.info("Creating ServiceAccount and RBAC...")
        if not self.client.ensure_namespace(RESOURCE_DEMO_NAMESPACE):
            raise DeployError(f"Could not create namespace {RESOURCE_DEMO_NAMESPACE}")
        apply_file(self.client, report, self.layout.agent_file("resource-optimizer-rbac.yaml"))

        logger.info("Waiting for ServiceAccount token...")
        token = self.client.wait_for_secret_value(
            OPTIMIZER_TOKEN_SECRET, namespace, "token", attempts=self.token_attempts, interval=2
        )
        if not token:
            raise DeployError(
                f"Token not generated after {self.token_attempts * 2} seconds. "
                f"Check: {self.client.cli_binary} get secret {OPTIMIZER_TOKEN_SECRET} -n {namespace}"
            )
        logger.success("Token generated")

        roster = build_roster(
            env.prefix,
            env.custom_agent_name or DEFAULT_AGENT_NAME,
            env.display_agent_name or DEFAULT_AGENT_DISPLAY_NAME,
        )
        optimizer = find_agent(roster, "resource-optimizer")
        WorkspaceInstaller(self.client, namespace).set_env_vars(optimizer.workspace, {"OC_TOKEN": token})
        logger.success("OC_TOKEN added to resource-optimizer .env")

        logger.info("Verifying permissions...")
        checker = self.checker_factory(self.client, token)
        if not checker.can_list_pods(RESOURCE_DEMO_NAMESPACE):
            raise DeployError(f"Token cannot list pods in {RESOURCE_DEMO_NAMESPACE}, check the RBAC permissions")
        logger.success(f"Can read pods in {RESOURCE_DEMO_NAMESPACE}")
        report.details["read_pods"] = "ok"

        metrics = checker.metrics_available(RESOURCE_DEMO_NAMESPACE)
        report.details["metrics"] = metrics
        if metrics == METRICS_AVAILABLE:
            logger.success("Can read pod metrics")
        elif metrics == METRICS_NOT_INSTALLED:
            report.warn("Metrics API not available (metrics-server may not be installed)")
        else:
            report.warn("Metrics API: token not authorized yet (may work after a few seconds)")

        if checker.write_blocked(RESOURCE_DEMO_NAMESPACE):
            logger.success("Write operations blocked (as expected)")
            report.details["write_blocked"] = "yes"
        else:
            report.warn("Write test inconclusive (expected Forbidden), check RBAC permissions")
            report.details["write_blocked"] = "no"
        return report
