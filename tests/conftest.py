"""
Pytest configuration and fixtures.

Provides deterministic clocks, temporary deployment layouts, and a fake
stage executor so no test runs ansible-playbook or kubectl.
"""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from airgap_deploy.config import DeployConfig, VersionConfig
from airgap_deploy.stages import StageDefinition


class FakeExecutor:
    """Stage executor returning scripted exit codes and recording calls."""

    def __init__(self, exit_codes: dict[str, int] | None = None) -> None:
        self.exit_codes = dict(exit_codes or {})
        self.calls: list[str] = []

    def __call__(self, stage: StageDefinition, log_file: Path) -> int:
        self.calls.append(stage.name)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        log_file.write_text(f"ran {stage.name}\n")
        return self.exit_codes.get(stage.name, 0)


@pytest.fixture
def clock():
    """Clock returning a new, increasing timestamp on every call."""
    counter = itertools.count()
    return lambda: f"2026-01-01T00:00:{next(counter):02d}Z"


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "logs" / "deployment_state.json"


@pytest.fixture
def make_stage():
    def _make(name: str) -> StageDefinition:
        return StageDefinition(name=name, playbook=f"{name}.yml", log_prefix=name.replace("-", "_"))
    return _make


@pytest.fixture
def workspace(tmp_path):
    """A minimal bastion workspace with inventory, group vars, and SSH files."""
    root = tmp_path / "bastion"
    airgap = root / "ansible" / "rke2" / "airgap"
    (airgap / "group_vars").mkdir(parents=True)
    (airgap / "inventory.yml").write_text(
        "all:\n"
        "  hosts:\n"
        "    bastion-node:\n"
        "      ansible_host: 10.0.0.5\n"
        "  children:\n"
        "    rke2_servers:\n"
        "      hosts:\n"
        "        master-1:\n"
        "          ansible_host: 172.16.0.10\n"
        "        master-2:\n"
        "          ansible_host: 172.16.0.11\n"
        "    rke2_agents:\n"
        "      hosts:\n"
        "        worker-1:\n"
        "          ansible_host: 172.16.0.20\n"
    )
    (airgap / "group_vars" / "all.yml").write_text("rke2_version: v1.30.1+rke2r1\n")

    ssh = root / ".ssh"
    ssh.mkdir()
    (ssh / "config").write_text("Host *\n  User ubuntu\n")
    key = ssh / "id_rsa"
    key.write_text("not-a-real-key\n")
    key.chmod(0o600)

    repo = root / "qa-infra-automation"
    (repo / "ansible" / "rke2" / "airgap" / "playbooks").mkdir(parents=True)
    (root / "ansible-workspace").mkdir()
    return root


@pytest.fixture
def deploy_cfg(workspace):
    """DeployConfig pointing every path into the temporary workspace."""
    return DeployConfig(
        ansible_workspace=workspace / "ansible-workspace",
        ansible_inventory_file=workspace / "ansible" / "rke2" / "airgap" / "inventory.yml",
        ansible_group_vars_file=workspace / "ansible" / "rke2" / "airgap" / "group_vars" / "all.yml",
        qa_infra_repo_path=workspace / "qa-infra-automation",
        ssh_config_file=workspace / ".ssh" / "config",
        ssh_private_key=workspace / ".ssh" / "id_rsa",
        ansible_log_dir=workspace / "ansible-logs",
        probe_settle_seconds=0,
        probe_interval_seconds=0,
        kubeconfig_search_paths=(workspace / "kubeconfig.yaml",),
    )


@pytest.fixture
def versions():
    return VersionConfig(rke2_version="v1.30.1+rke2r1", rancher_version="v2.9.2")


@pytest.fixture
def fake_executor():
    """Factory for FakeExecutor instances."""
    return FakeExecutor
