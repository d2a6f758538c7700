# /*
# Copyright 2026 The Airgap Deploy Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Pre-flight validation of the bastion workspace and artifact publishing."""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from rich.panel import Panel

from airgap_deploy import console, logger
from airgap_deploy.config import DeployConfig
from airgap_deploy.constants import INVENTORY_GROUPS, REQUIRED_TOOLS, SSH_KEY_EXPECTED_MODE
from airgap_deploy.errors import EnvironmentValidationError
from airgap_deploy.stages import StageDefinition
from airgap_deploy.utils import require_command


# ============================================================================
# Validation
# ============================================================================

def check_prerequisites(tools: Iterable[str] = REQUIRED_TOOLS) -> None:
    """Check that every CLI tool the deployment shells out to is installed.

    Raises:
        EnvironmentValidationError: If a tool is missing.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in tools:
        require_command(cmd)
    console.print("[green]\u2705 All required tools are available[/green]")


def _find_group(node: Any, group: str) -> dict | None:
    if not isinstance(node, dict):
        return None
    for key, child in node.items():
        if key == group and isinstance(child, dict):
            return child
        found = _find_group(child, group)
        if found is not None:
            return found
    return None


def inventory_group_counts(inventory_file: Path) -> dict[str, int | None]:
    """Count hosts in each expected inventory group.

    Args:
        inventory_file: Ansible YAML inventory.

    Returns:
        Group name to host count, or None for groups that are absent.

    Raises:
        EnvironmentValidationError: If the inventory is not valid YAML.
    """
    try:
        with open(inventory_file) as f:
            inventory = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise EnvironmentValidationError(f"Invalid inventory {inventory_file}: {exc}") from exc

    counts: dict[str, int | None] = {}
    for group in INVENTORY_GROUPS:
        node = _find_group(inventory, group)
        counts[group] = None if node is None else len(node.get("hosts") or {})
    return counts


def validate_deployment_environment(cfg: DeployConfig) -> None:
    """Validate the files, directories, and inventory a deployment needs.

    Missing inventory groups and unusual SSH key permissions are warnings;
    everything else is fatal.

    Args:
        cfg: Deployment configuration.

    Raises:
        EnvironmentValidationError: If a required file or directory is missing.
    """
    console.print(Panel.fit("Validating deployment environment", style="bold blue"))

    required_files = [
        cfg.ansible_inventory_file,
        cfg.ansible_group_vars_file,
        cfg.ssh_private_key,
        cfg.ssh_config_file,
    ]
    required_dirs = [
        cfg.ansible_workspace,
        cfg.ansible_inventory_file.parent,
        cfg.ansible_group_vars_file.parent,
        cfg.ssh_private_key.parent,
    ]
    missing = [f"file {p}" for p in required_files if not p.is_file()]
    missing += [f"directory {p}" for p in required_dirs if not p.is_dir()]
    if missing:
        raise EnvironmentValidationError("Required paths not found: " + ", ".join(missing))

    for group, count in inventory_group_counts(cfg.ansible_inventory_file).items():
        if count is None:
            logger.warning("%s group not found in inventory", group)
        else:
            console.print(f"[green]  \u2713 {group} group found ({count} hosts)[/green]")

    mode = cfg.ssh_private_key.stat().st_mode & 0o777
    if mode != SSH_KEY_EXPECTED_MODE:
        logger.warning("SSH key has unusual permissions: %o (expected: %o)", mode, SSH_KEY_EXPECTED_MODE)

    console.print("[green]\u2705 Deployment environment validated[/green]")


# ============================================================================
# Artifacts
# ============================================================================

def publish_artifacts(cfg: DeployConfig, stages: Iterable[StageDefinition]) -> list[Path]:
    """Copy the state document, summary, and stage logs to the shared directory.

    Args:
        cfg: Deployment configuration with ``shared_dir`` set.
        stages: Stages whose logs to publish.

    Returns:
        Paths of the copied files.
    """
    if cfg.shared_dir is None:
        return []

    cfg.shared_dir.mkdir(parents=True, exist_ok=True)
    sources = [cfg.state_file, cfg.summary_file]
    sources += [cfg.ansible_log_dir / f"{stage.log_prefix}.log" for stage in stages]

    copied: list[Path] = []
    for src in sources:
        if not src.is_file():
            continue
        dest = cfg.shared_dir / src.name
        shutil.copy2(src, dest)
        copied.append(dest)
    console.print(f"[green]  \u2713 Published {len(copied)} artifacts to {cfg.shared_dir}[/green]")
    return copied
