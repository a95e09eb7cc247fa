#!/usr/bin/env python3
"""
Tests for the gateway workspace installer and the agent roster
"""

import pytest

from conftest import FakeClusterClient
from clawdeploy.errors import DeployError
from clawdeploy.agents.registry import build_roster, find_agent
from clawdeploy.agents.workspace import WorkspaceInstaller, upsert_env_lines, JOBS_FILE

def test_roster_ids_and_secrets():
    roster = build_roster("alice", "lynx", "Lynx")

    assert [agent.key for agent in roster] == ["shadowman", "philbot", "resource-optimizer"]
    default = roster[0]
    assert default.agent_id == "alice_lynx"
    assert default.display_name == "Lynx"
    assert default.key_secret == "alice-lynx-moltbook-key"
    assert default.configmap == "shadowman-agent"
    assert default.workspace == "/home/node/.openclaw/workspace-alice_lynx"
    assert find_agent(roster, "philbot").key_secret == "philbot-moltbook-key"

    with pytest.raises(KeyError):
        find_agent(roster, "nobody")

def test_upsert_env_lines():
    existing = "MOLTBOOK_API_KEY=old\nOTHER=1\n\nOC_TOKEN=stale\n"

    updated = upsert_env_lines(existing, {"OC_TOKEN": "fresh", "MOLTBOOK_API_KEY": "new"})

    assert updated == "OTHER=1\nOC_TOKEN=fresh\nMOLTBOOK_API_KEY=new\n"
    assert upsert_env_lines(None, {"A": "1"}) == "A=1\n"

def test_set_env_vars_merges_with_pod_file():
    client = FakeClusterClient()
    installer = WorkspaceInstaller(client, "alice-openclaw")
    workspace = "/home/node/.openclaw/workspace-alice_philbot"
    client.pod_files[f"{workspace}/.env"] = "KEEP=yes\nOC_TOKEN=old\n"

    installer.set_env_vars(workspace, {"OC_TOKEN": "new"})

    assert client.pod_files[f"{workspace}/.env"] == "KEEP=yes\nOC_TOKEN=new\n"

def test_install_identity_skips_missing_files():
    client = FakeClusterClient()
    agent = build_roster("alice", "shadowman", "Shadowman")[1]

    WorkspaceInstaller(client, "alice-openclaw").install_identity(agent, {"AGENTS.md": "# PhilBot", "agent.json": None})

    assert client.pod_files == {f"{agent.workspace}/AGENTS.md": "# PhilBot"}

def test_read_jobs_ignores_garbage():
    client = FakeClusterClient()
    installer = WorkspaceInstaller(client, "alice-openclaw")

    assert installer.read_jobs() is None
    client.pod_files[JOBS_FILE] = "{not json"
    assert installer.read_jobs() is None

    installer.write_jobs({"version": 1, "jobs": []})
    assert installer.read_jobs() == {"version": 1, "jobs": []}

def test_write_failure_raises():
    client = FakeClusterClient()
    client.write_file_in_deployment = lambda *args, **kwargs: False

    with pytest.raises(DeployError, match="Could not write"):
        WorkspaceInstaller(client, "alice-openclaw").write_script("resource-report.sh", "#!/bin/sh\n")
