#!/usr/bin/env python3
"""
Tests for the platform setup workflow and the .env values it computes
"""

import yaml
import pytest

from conftest import FakeClusterClient
from clawdeploy.config.env_file import DeployEnv, load_env, DEFAULT_MODEL_ENDPOINT
from clawdeploy.deploy_manager import PlatformSetup, SetupOptions, build_setup_values, namespace_for_prefix

def test_build_setup_values_generates_and_reuses_secrets():
    options = SetupOptions(prefix="alice", cluster_domain="apps.example.com")

    fresh = build_setup_values(DeployEnv(), options)
    assert fresh["OPENCLAW_NAMESPACE"] == "alice-openclaw"
    assert fresh["POSTGRES_DB"] == "moltbook"
    assert fresh["MODEL_ENDPOINT"] == DEFAULT_MODEL_ENDPOINT
    assert fresh["A2A_ENABLED"] == "false"
    assert len(fresh["OPENCLAW_OAUTH_COOKIE_SECRET"]) == 32
    assert "KEYCLOAK_URL" not in fresh

    existing = DeployEnv(values={"JWT_SECRET": "keep-me", "POSTGRES_PASSWORD": "old-pg"})
    rerun = build_setup_values(existing, options)
    assert rerun["JWT_SECRET"] == "keep-me"
    assert rerun["POSTGRES_PASSWORD"] == "old-pg"
    assert rerun["ADMIN_API_KEY"] != fresh["ADMIN_API_KEY"]

def test_build_setup_values_explicit_password_wins():
    existing = DeployEnv(values={"POSTGRES_PASSWORD": "old-pg"})
    options = SetupOptions(prefix="alice", cluster_domain="apps.example.com", postgres_password="new-pg")

    assert build_setup_values(existing, options)["POSTGRES_PASSWORD"] == "new-pg"

def test_build_setup_values_a2a_defaults():
    options = SetupOptions(prefix="alice", cluster_domain="apps.example.com", with_a2a=True)

    values = build_setup_values(DeployEnv(), options)

    assert values["A2A_ENABLED"] == "true"
    assert values["KEYCLOAK_URL"] == "https://keycloak-spiffe-demo.apps.example.com"
    assert values["KEYCLOAK_REALM"] == "spiffe-demo"

def test_namespace_for_prefix():
    assert namespace_for_prefix("bob") == "bob-openclaw"

def test_platform_setup_openshift(layout, fake_client):
    (layout.manifests / "openclaw" / "oauthclient.yaml.envsubst").write_text(
        "kind: OAuthClient\nsecret: ${OPENCLAW_OAUTH_CLIENT_SECRET}\n", encoding="utf-8"
    )
    fake_client.routes[("openclaw", "alice-openclaw")] = "openclaw-alice-openclaw.apps.example.com"
    options = SetupOptions(prefix="alice", cluster_domain="apps.example.com")

    report = PlatformSetup(fake_client, layout).run(options, skip_agents=True)

    env = load_env(layout.env_file)
    assert env.namespace == "alice-openclaw"
    assert env.get("CLUSTER_DOMAIN") == "apps.example.com"

    rendered = (layout.manifests / "openclaw" / "oauthclient.yaml").read_text(encoding="utf-8")
    assert env.get("OPENCLAW_OAUTH_CLIENT_SECRET") in rendered

    secrets = list(yaml.safe_load_all(
        (layout.private / "moltbook" / "secrets-patch.yaml").read_text(encoding="utf-8")
    ))
    postgres = [s for s in secrets if s["metadata"]["name"] == "moltbook-postgresql"][0]
    assert postgres["stringData"]["database-password"] == env.get("POSTGRES_PASSWORD")

    kustomizations = [call[1] for call in fake_client.calls if call[0] == "apply_kustomization"]
    assert kustomizations == ["moltbook", "openclaw"]
    assert ("ensure_namespace", "moltbook") in fake_client.calls
    assert report.details["openclaw_url"] == "https://openclaw-alice-openclaw.apps.example.com"
    assert report.details["moltbook_api_url"] == ""
    assert fake_client.restarts() == 0

def test_platform_setup_a2a_binds_scc(layout, fake_client):
    layout.a2a.mkdir(parents=True)
    options = SetupOptions(prefix="alice", cluster_domain="apps.example.com", with_a2a=True)

    PlatformSetup(fake_client, layout).run(options, skip_agents=True)

    assert ("apply_kustomization", "a2a", "alice-openclaw") in fake_client.calls
    binding = [call for call in fake_client.calls if call[0] == "create_clusterrolebinding"][0]
    assert binding[1] == "openclaw-authbridge-scc-alice-openclaw"
    assert binding[2] == "system:openshift:scc:anyuid"

def test_platform_setup_kubernetes_has_no_openshift_extras(layout):
    client = FakeClusterClient(k8s_mode=True)
    layout.a2a.mkdir(parents=True)
    options = SetupOptions(prefix="alice", cluster_domain="apps.example.com", with_a2a=True)

    report = PlatformSetup(client, layout, k8s_mode=True).run(options, skip_agents=True)

    assert not any(call[0] == "create_clusterrolebinding" for call in client.calls)
    assert not any(path.name.endswith("oauthclient.yaml") for path in report.generated)

def test_platform_setup_rollout_timeout_only_warns(layout, fake_client):
    fake_client.rollout_ok = False
    options = SetupOptions(prefix="alice", cluster_domain="apps.example.com")

    report = PlatformSetup(fake_client, layout).run(options, skip_agents=True)

    assert any("not ready" in w for w in report.warnings)
