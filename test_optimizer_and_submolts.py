#!/usr/bin/env python3
"""
Tests for setup-optimizer-rbac, create-submolts and the ServiceAccount access checker
"""

import pytest
from types import SimpleNamespace
from kubernetes import client as k8s
from kubernetes.client.rest import ApiException

from conftest import write_dotenv
from clawdeploy.errors import DeployError
from clawdeploy.deploy_manager import OptimizerRbacSetup, SubmoltCreator
from clawdeploy.agents.moltbook import DEFAULT_SUBMOLTS, SUBMOLT_CREATED, SUBMOLT_EXISTS, SUBMOLT_FAILED
from clawdeploy.openshift_client.access_check import (
    ServiceAccountAccessChecker,
    METRICS_AVAILABLE,
    METRICS_NOT_INSTALLED,
    METRICS_UNAUTHORIZED,
)

class FakeChecker:
    list_ok = True
    metrics = METRICS_AVAILABLE
    blocked = True

    def __init__(self, cluster_client, token):
        self.token = token

    def can_list_pods(self, namespace):
        return self.list_ok

    def metrics_available(self, namespace):
        return self.metrics

    def write_blocked(self, namespace):
        return self.blocked

def test_optimizer_rbac_injects_token_and_verifies(layout, fake_client):
    write_dotenv(layout)

    report = OptimizerRbacSetup(fake_client, layout, checker_factory=FakeChecker).run()

    assert ("ensure_namespace", "resource-demo") in fake_client.calls
    assert "resource-optimizer-rbac.yaml" in fake_client.applied_files()
    env_file = fake_client.pod_files["/home/node/.openclaw/workspace-alice_resource_optimizer/.env"]
    assert env_file == "OC_TOKEN=sa-token\n"
    assert report.details == {"read_pods": "ok", "metrics": METRICS_AVAILABLE, "write_blocked": "yes"}
    assert report.warnings == []

def test_optimizer_rbac_without_token_fails(layout, fake_client):
    write_dotenv(layout)
    fake_client.token = None

    with pytest.raises(DeployError, match="oc get secret resource-optimizer-sa-token -n alice-openclaw"):
        OptimizerRbacSetup(fake_client, layout, checker_factory=FakeChecker).run()

def test_optimizer_rbac_denied_listing_fails(layout, fake_client):
    write_dotenv(layout)

    class Denied(FakeChecker):
        list_ok = False

    with pytest.raises(DeployError, match="cannot list pods"):
        OptimizerRbacSetup(fake_client, layout, checker_factory=Denied).run()

def test_optimizer_rbac_soft_checks_warn(layout, fake_client):
    write_dotenv(layout)

    class Partial(FakeChecker):
        metrics = METRICS_NOT_INSTALLED
        blocked = False

    report = OptimizerRbacSetup(fake_client, layout, checker_factory=Partial).run()

    assert report.details["write_blocked"] == "no"
    assert len(report.warnings) == 2

class FakeMoltbook:
    instances = []
    existing = None

    def __init__(self, api_url, api_key):
        self.api_url = api_url
        self.api_key = api_key
        self.created = []
        FakeMoltbook.instances.append(self)

    def list_submolts(self):
        return self.existing

    def create_submolt(self, name, display_name, description):
        self.created.append(name)
        if name == "mlops":
            return SUBMOLT_EXISTS, "already exists"
        if name == "philosophy":
            return SUBMOLT_FAILED, "boom"
        return SUBMOLT_CREATED, "{}"

def test_create_submolts_defaults(layout, fake_client):
    FakeMoltbook.instances = []
    write_dotenv(layout)
    fake_client.routes[("moltbook-api", "moltbook")] = "moltbook-api-moltbook.apps.example.com"
    fake_client.secrets[("alice-shadowman-moltbook-key", "api_key")] = "key-default"

    report = SubmoltCreator(fake_client, layout, moltbook_factory=FakeMoltbook).run()

    moltbook = FakeMoltbook.instances[0]
    assert moltbook.api_url == "https://moltbook-api-moltbook.apps.example.com"
    assert moltbook.api_key == "key-default"
    assert moltbook.created == [s.name for s in DEFAULT_SUBMOLTS]
    assert report.details["compliance"] == SUBMOLT_CREATED
    assert report.details["mlops"] == SUBMOLT_EXISTS
    assert report.details["philosophy"] == SUBMOLT_FAILED
    assert len(report.warnings) == 1

def test_create_submolts_custom_agent_key(layout, fake_client):
    FakeMoltbook.instances = []
    write_dotenv(layout, SHADOWMAN_CUSTOM_NAME="lynx")
    fake_client.secrets[("alice-lynx-moltbook-key", "api_key")] = "key-lynx"

    SubmoltCreator(fake_client, layout, moltbook_factory=FakeMoltbook).run(api_url="http://localhost:3000")

    assert FakeMoltbook.instances[0].api_key == "key-lynx"
    assert FakeMoltbook.instances[0].api_url == "http://localhost:3000"

def test_create_submolts_errors(layout, fake_client):
    write_dotenv(layout)

    with pytest.raises(DeployError, match="moltbook-api route"):
        SubmoltCreator(fake_client, layout, moltbook_factory=FakeMoltbook).run()

    with pytest.raises(DeployError, match="Could not get API key"):
        SubmoltCreator(fake_client, layout, moltbook_factory=FakeMoltbook).run(api_url="http://x")

def _checker(core_v1=None, custom_objects=None):
    base = k8s.Configuration()
    base.host = "https://api.example.com:6443"
    cluster = SimpleNamespace(k8s_client=SimpleNamespace(configuration=base))
    checker = ServiceAccountAccessChecker(cluster, "sa-token", retries=3, interval=0)
    if core_v1:
        checker.core_v1 = core_v1
    if custom_objects:
        checker.custom_objects = custom_objects
    return checker

def _raise(status):
    def call(**kwargs):
        raise ApiException(status=status, reason="denied")
    return call

def test_access_checker_uses_bearer_token():
    checker = _checker()

    configuration = checker.api_client.configuration
    assert configuration.host == "https://api.example.com:6443"
    assert configuration.api_key == {"authorization": "sa-token"}
    assert configuration.api_key_prefix == {"authorization": "Bearer"}

def test_access_checker_retries_unauthorized():
    attempts = []

    def list_pods(**kwargs):
        attempts.append(kwargs)
        if len(attempts) < 2:
            raise ApiException(status=401, reason="Unauthorized")
        return SimpleNamespace(items=[])

    assert _checker(core_v1=SimpleNamespace(list_namespaced_pod=list_pods)).can_list_pods("resource-demo")
    assert len(attempts) == 2
    assert not _checker(core_v1=SimpleNamespace(list_namespaced_pod=_raise(403))).can_list_pods("resource-demo")

def test_access_checker_metrics_and_writes():
    assert _checker(custom_objects=SimpleNamespace(
        list_namespaced_custom_object=lambda **kwargs: {"items": []}
    )).metrics_available("resource-demo") == METRICS_AVAILABLE
    assert _checker(custom_objects=SimpleNamespace(
        list_namespaced_custom_object=_raise(404)
    )).metrics_available("resource-demo") == METRICS_NOT_INSTALLED
    assert _checker(custom_objects=SimpleNamespace(
        list_namespaced_custom_object=_raise(403)
    )).metrics_available("resource-demo") == METRICS_UNAUTHORIZED

    assert _checker(core_v1=SimpleNamespace(delete_namespaced_pod=_raise(403))).write_blocked("resource-demo")
    assert not _checker(core_v1=SimpleNamespace(delete_namespaced_pod=_raise(404))).write_blocked("resource-demo")

def test_create_submolts_skips_listed(layout, fake_client):
    FakeMoltbook.instances = []
    write_dotenv(layout)
    fake_client.secrets[("alice-shadowman-moltbook-key", "api_key")] = "key-default"

    class Listed(FakeMoltbook):
        existing = [{"name": "compliance"}, {"name": "philosophy"}]

    report = SubmoltCreator(fake_client, layout, moltbook_factory=Listed).run(api_url="http://localhost:3000")

    assert FakeMoltbook.instances[0].created == ["cost_resource_analysis", "mlops"]
    assert report.details["compliance"] == SUBMOLT_EXISTS
    assert report.details["philosophy"] == SUBMOLT_EXISTS
    assert report.warnings == []
