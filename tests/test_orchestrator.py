"""Tests for the init, deploy, and summary workflows."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from airgap_deploy.errors import StageNotFoundError, StateFileError
from airgap_deploy.orchestrator import apply_overrides, run_deploy, run_init, run_summary
from airgap_deploy.state import StageTracker


def test_apply_overrides_only_touches_given_values(deploy_cfg):
    cfg = apply_overrides(deploy_cfg, timeout=90)
    assert cfg.ansible_timeout == 90
    assert cfg.continue_on_failure is False
    assert apply_overrides(deploy_cfg) is deploy_cfg

    cfg = apply_overrides(deploy_cfg, continue_on_failure=True, command_timeout=3600)
    assert cfg.continue_on_failure is True
    assert cfg.command_timeout == 3600


def test_run_init_creates_pending_state(deploy_cfg, versions):
    tracker = run_init(deploy_cfg, versions)

    doc = json.loads(deploy_cfg.state_file.read_text())
    assert doc["deployment_id"] == tracker.run.deployment_id
    assert list(doc["stages"]) == ["ssh-setup", "rke2-deploy", "kubectl-setup", "rancher-deploy"]
    assert doc["config"]["rke2_version"] == "v1.30.1+rke2r1"
    assert doc["config"]["hostname_prefix"] == "not_set"


def test_run_deploy_success(deploy_cfg, versions, fake_executor):
    executor = fake_executor()

    outcome = run_deploy(deploy_cfg, versions, validate=False, executor=executor, probes={})

    assert outcome.exit_code == 0
    assert executor.calls == ["ssh-setup", "rke2-deploy", "kubectl-setup", "rancher-deploy"]
    assert StageTracker.load(deploy_cfg.state_file).run.status == "success"
    assert "Status: success" in deploy_cfg.summary_file.read_text()
    assert (deploy_cfg.ansible_log_dir / "rke2_deployment.log").is_file()


def test_run_deploy_reclassifies_rke2_partial_failure(deploy_cfg, versions, fake_executor):
    probe = MagicMock(return_value=True)

    outcome = run_deploy(
        deploy_cfg, versions, ["rke2-deploy", "kubectl-setup"],
        validate=False,
        executor=fake_executor({"rke2-deploy": 2}),
        probes={"rke2-deploy": probe},
    )

    probe.assert_called_once_with()
    assert outcome.exit_code == 0
    assert outcome.run.stages["rke2-deploy"].exit_code == 0


def test_run_deploy_with_missing_playbooks(deploy_cfg, versions):
    outcome = run_deploy(deploy_cfg, versions, validate=False, probes={})

    assert outcome.exit_code == 1
    stages = outcome.run.stages
    assert (stages["ssh-setup"].status, stages["ssh-setup"].exit_code) == ("failure", 1)
    assert stages["rke2-deploy"].status == "pending"
    assert "Playbook not found" in (deploy_cfg.ansible_log_dir / "ssh_setup.log").read_text()


def test_run_deploy_rejects_unknown_stage_before_writing(deploy_cfg, versions, fake_executor):
    with pytest.raises(StageNotFoundError):
        run_deploy(deploy_cfg, versions, ["ssh-setup", "helm-deploy"],
                   validate=False, executor=fake_executor())
    assert not deploy_cfg.state_file.exists()


def test_run_deploy_validates_first(deploy_cfg, versions, fake_executor):
    with patch("airgap_deploy.orchestrator.check_prerequisites") as mock_prereqs:
        run_deploy(deploy_cfg, versions, ["ssh-setup"], executor=fake_executor(), probes={})
    mock_prereqs.assert_called_once_with()


def test_run_deploy_publishes_to_shared_dir(deploy_cfg, versions, fake_executor, tmp_path):
    shared = tmp_path / "shared"
    cfg = deploy_cfg.model_copy(update={"shared_dir": shared})

    run_deploy(cfg, versions, ["ssh-setup"], validate=False, executor=fake_executor(), probes={})

    assert sorted(p.name for p in shared.iterdir()) == [
        "deployment_state.json", "deployment_summary.txt", "ssh_setup.log",
    ]


def test_run_summary_regenerates_from_state(deploy_cfg, versions, fake_executor):
    run_deploy(deploy_cfg, versions, ["ssh-setup"], validate=False,
               executor=fake_executor({"ssh-setup": 4}), probes={})
    expected = deploy_cfg.summary_file.read_text()
    deploy_cfg.summary_file.unlink()

    assert run_summary(deploy_cfg) == deploy_cfg.summary_file
    assert deploy_cfg.summary_file.read_text() == expected
    assert "- ssh-setup: failure" in expected


def test_run_summary_without_state(deploy_cfg):
    with pytest.raises(StateFileError):
        run_summary(deploy_cfg)
