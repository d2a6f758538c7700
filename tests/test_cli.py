"""Tests for the typer command-line interface."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from airgap_deploy.cli import app

runner = CliRunner()


@pytest.fixture
def env_file(deploy_cfg, monkeypatch):
    """Paths env file describing the temporary workspace."""
    for name in ("ANSIBLE_LOG_DIR", "QA_INFRA_REPO_PATH", "ANSIBLE_INVENTORY_FILE", "CONTINUE_ON_FAILURE"):
        monkeypatch.delenv(name, raising=False)
    path = deploy_cfg.ansible_workspace / "ansible_paths.env"
    path.write_text(
        f"ANSIBLE_WORKSPACE={deploy_cfg.ansible_workspace}\n"
        f"ANSIBLE_INVENTORY_FILE={deploy_cfg.ansible_inventory_file}\n"
        f"ANSIBLE_GROUP_VARS_FILE={deploy_cfg.ansible_group_vars_file}\n"
        f"QA_INFRA_REPO_PATH={deploy_cfg.qa_infra_repo_path}\n"
        f"SSH_CONFIG_FILE={deploy_cfg.ssh_config_file}\n"
        f"SSH_PRIVATE_KEY={deploy_cfg.ssh_private_key}\n"
        f"ANSIBLE_LOG_DIR={deploy_cfg.ansible_log_dir}\n"
        "RKE2_VERSION=v1.30.1+rke2r1\n"
    )
    return path


def test_state_stages_lists_catalog():
    result = runner.invoke(app, ["state", "stages"])
    assert result.exit_code == 0
    for name in ("ssh-setup", "rke2-deploy", "kubectl-setup", "rancher-deploy"):
        assert name in result.output


def test_state_init_writes_state(env_file, deploy_cfg):
    result = runner.invoke(app, ["state", "init", "--env-file", str(env_file)])

    assert result.exit_code == 0
    doc = json.loads(deploy_cfg.state_file.read_text())
    assert doc["status"] == "running"
    assert doc["config"]["rke2_version"] == "v1.30.1+rke2r1"


def test_deploy_custom_rejects_unknown_stage(env_file, deploy_cfg):
    result = runner.invoke(app, ["deploy", "custom", "helm-deploy", "--env-file", str(env_file)])

    assert result.exit_code == 2
    assert not deploy_cfg.state_file.exists()


def test_deploy_custom_exit_code_reflects_failed_stage(env_file, deploy_cfg):
    result = runner.invoke(
        app, ["deploy", "custom", "ssh-setup", "--skip-validation", "--env-file", str(env_file)],
    )

    assert result.exit_code == 1
    doc = json.loads(deploy_cfg.state_file.read_text())
    assert doc["status"] == "failed"
    assert doc["stages"]["ssh-setup"]["exit_code"] == 1


def test_state_summary_after_deploy(env_file, deploy_cfg):
    runner.invoke(app, ["deploy", "custom", "ssh-setup", "--skip-validation", "--env-file", str(env_file)])
    deploy_cfg.summary_file.unlink()

    result = runner.invoke(app, ["state", "summary", "--env-file", str(env_file)])

    assert result.exit_code == 0
    assert "DEPLOYMENT SUMMARY" in deploy_cfg.summary_file.read_text()


def test_state_summary_without_state_fails(env_file):
    result = runner.invoke(app, ["state", "summary", "--env-file", str(env_file)])
    assert result.exit_code != 0
