#!/usr/bin/env python3
"""
Tests for teardown: namespace cleanup, OpenShift leftovers and A2A Keycloak clients
"""

import pytest

from conftest import FakeClusterClient, write_dotenv
from clawdeploy.config.env_file import load_env
from clawdeploy.deploy_manager import Teardown
from clawdeploy.deploy_manager import teardown as teardown_mod

class FakeKeycloak:
    instances = []

    def __init__(self, url, realm, username, password):
        self.url = url
        self.realm = realm
        self.username = username
        self.password = password
        self.deleted = []
        self.token_ok = True
        self.clients = {"spiffe://demo.example.com/ns/alice-openclaw/sa/openclaw-oauth-proxy": "uuid-1"}
        FakeKeycloak.instances.append(self)

    def get_token(self):
        return "admin-token" if self.token_ok else None

    def find_client_uuid(self, client_id):
        return self.clients.get(client_id)

    def delete_client(self, uuid):
        self.deleted.append(uuid)
        return True

@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(teardown_mod.time, "sleep", lambda seconds: None)
    FakeKeycloak.instances = []

def test_teardown_openshift(layout, fake_client):
    write_dotenv(layout)
    template = layout.agents / "philbot-agent.yaml.envsubst"
    template.write_text("name: x\n", encoding="utf-8")

    env = load_env(layout.env_file)
    report = Teardown(fake_client, layout, keycloak_factory=FakeKeycloak).run(env, "alice-openclaw")

    calls = fake_client.calls
    assert ("delete_resource", "OAuthClient", "alice-openclaw", None) in calls
    assert ("delete_all", "Route", "alice-openclaw") in calls
    assert ("delete_all", "Deployment", "alice-openclaw") in calls
    assert calls.index(("delete_all", "Deployment", "alice-openclaw")) < calls.index(("delete_namespace", "alice-openclaw"))
    assert "alice-openclaw" not in fake_client.namespaces

    # A2A was off
    assert FakeKeycloak.instances == []

    # Generated file next to its template removed, template and .env kept
    assert not (layout.agents / "philbot-agent.yaml").exists()
    assert template.exists()
    assert layout.env_file.exists()
    assert report.details["generated_removed"] == "1"

def test_teardown_kubernetes_skips_openshift_resources(layout):
    write_dotenv(layout)
    client = FakeClusterClient(k8s_mode=True)

    Teardown(client, layout, k8s_mode=True).run(load_env(layout.env_file), "alice-openclaw", delete_env=True)

    kinds = [call[1] for call in client.calls if call[0] in ("delete_all", "delete_resource")]
    assert "Route" not in kinds
    assert "OAuthClient" not in kinds
    assert not layout.env_file.exists()

def test_teardown_a2a_removes_keycloak_client(layout, fake_client):
    write_dotenv(layout, A2A_ENABLED="true", KEYCLOAK_URL="https://kc.example.com")

    report = Teardown(fake_client, layout, keycloak_factory=FakeKeycloak).run(
        load_env(layout.env_file), "alice-openclaw"
    )

    keycloak = FakeKeycloak.instances[0]
    assert keycloak.url == "https://kc.example.com"
    assert keycloak.realm == "spiffe-demo"
    assert keycloak.deleted == ["uuid-1"]
    assert ("delete_resource", "ClusterRoleBinding", "openclaw-authbridge-scc-alice-openclaw", None) in fake_client.calls
    assert report.warnings == []

def test_teardown_keycloak_auth_failure_only_warns(layout, fake_client):
    write_dotenv(layout, A2A_ENABLED="true")

    class DeniedKeycloak(FakeKeycloak):
        def get_token(self):
            return None

    report = Teardown(fake_client, layout, keycloak_factory=DeniedKeycloak).run(
        load_env(layout.env_file), "alice-openclaw"
    )

    assert DeniedKeycloak.instances[0].url == "https://keycloak-spiffe-demo.apps.example.com"
    assert any("Could not authenticate to Keycloak" in w for w in report.warnings)
    assert "alice-openclaw" not in fake_client.namespaces

def test_teardown_strips_finalizers_when_namespace_hangs(layout, fake_client):
    write_dotenv(layout)
    fake_client.namespace_delete_ok = False

    report = Teardown(fake_client, layout).run(load_env(layout.env_file), "alice-openclaw")

    assert ("finalize_namespace", "alice-openclaw") in fake_client.calls
    assert "alice-openclaw" not in fake_client.namespaces
    assert any("timed out" in w for w in report.warnings)

def test_teardown_missing_namespace(layout, fake_client):
    report = Teardown(fake_client, layout).run(load_env(layout.env_file), "bob-openclaw")

    assert ("delete_namespace", "bob-openclaw") not in fake_client.calls
    assert any("bob-openclaw not found" in w for w in report.warnings)
