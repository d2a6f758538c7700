"""Unit tests for environment validation and artifact publishing."""

from __future__ import annotations

import logging
from unittest.mock import call, patch

import pytest

from airgap_deploy.environment import (
    check_prerequisites,
    inventory_group_counts,
    publish_artifacts,
    validate_deployment_environment,
)
from airgap_deploy.errors import EnvironmentValidationError
from airgap_deploy.stages import resolve_stages
from airgap_deploy.utils import require_command


def test_valid_environment_passes(deploy_cfg):
    validate_deployment_environment(deploy_cfg)


def test_missing_files_are_reported_together(deploy_cfg):
    deploy_cfg.ssh_config_file.unlink()
    deploy_cfg.ansible_group_vars_file.unlink()

    with pytest.raises(EnvironmentValidationError) as exc_info:
        validate_deployment_environment(deploy_cfg)

    message = str(exc_info.value)
    assert str(deploy_cfg.ssh_config_file) in message
    assert str(deploy_cfg.ansible_group_vars_file) in message


def test_missing_workspace_is_fatal(deploy_cfg):
    deploy_cfg.ansible_workspace.rmdir()
    with pytest.raises(EnvironmentValidationError, match="directory"):
        validate_deployment_environment(deploy_cfg)


def test_inventory_group_counts(deploy_cfg):
    assert inventory_group_counts(deploy_cfg.ansible_inventory_file) == {
        "rke2_servers": 2,
        "rke2_agents": 1,
    }


def test_missing_inventory_group_is_a_warning(deploy_cfg, caplog):
    deploy_cfg.ansible_inventory_file.write_text(
        "all:\n  children:\n    rke2_servers:\n      hosts:\n        master-1: {}\n"
    )
    with caplog.at_level(logging.WARNING, logger="airgap_deploy"):
        validate_deployment_environment(deploy_cfg)
    assert "rke2_agents group not found" in caplog.text


def test_invalid_inventory_yaml(deploy_cfg):
    deploy_cfg.ansible_inventory_file.write_text("all: [unclosed\n")
    with pytest.raises(EnvironmentValidationError, match="Invalid inventory"):
        validate_deployment_environment(deploy_cfg)


def test_loose_ssh_key_permissions_warn(deploy_cfg, caplog):
    deploy_cfg.ssh_private_key.chmod(0o644)
    with caplog.at_level(logging.WARNING, logger="airgap_deploy"):
        validate_deployment_environment(deploy_cfg)
    assert "unusual permissions: 644" in caplog.text


def test_check_prerequisites_checks_every_tool():
    with patch("airgap_deploy.environment.require_command") as mock_require:
        check_prerequisites(("ansible-playbook", "kubectl"))
    assert mock_require.call_args_list == [call("ansible-playbook"), call("kubectl")]


def test_check_prerequisites_propagates_missing_tool():
    error = EnvironmentValidationError("Required command 'kubectl' not found.")
    with patch("airgap_deploy.environment.require_command", side_effect=error):
        with pytest.raises(EnvironmentValidationError, match="kubectl"):
            check_prerequisites()


def test_require_command_unknown_tool():
    with pytest.raises(EnvironmentValidationError, match="not found"):
        require_command("airgap-deploy-no-such-tool")


def test_publish_artifacts_copies_state_summary_and_logs(deploy_cfg, tmp_path):
    shared = tmp_path / "shared"
    cfg = deploy_cfg.model_copy(update={"shared_dir": shared})
    cfg.ansible_log_dir.mkdir(parents=True)
    cfg.state_file.write_text("{}\n")
    cfg.summary_file.write_text("summary\n")
    (cfg.ansible_log_dir / "ssh_setup.log").write_text("ok\n")

    copied = publish_artifacts(cfg, resolve_stages(["ssh-setup", "rke2-deploy"]))

    assert sorted(p.name for p in copied) == [
        "deployment_state.json", "deployment_summary.txt", "ssh_setup.log",
    ]
    assert (shared / "ssh_setup.log").read_text() == "ok\n"


def test_publish_artifacts_without_shared_dir(deploy_cfg):
    assert publish_artifacts(deploy_cfg, resolve_stages()) == []
