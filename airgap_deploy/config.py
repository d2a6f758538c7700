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

"""Configuration classes, config loading, and config display."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from airgap_deploy import console, logger
from airgap_deploy.constants import (
    DEFAULT_ANSIBLE_TIMEOUT,
    DEFAULT_ANSIBLE_VERBOSITY,
    DEFAULT_ANSIBLE_WORKSPACE,
    DEFAULT_GROUP_VARS_FILE,
    DEFAULT_INVENTORY_FILE,
    DEFAULT_KUBECONFIG_SEARCH_PATHS,
    DEFAULT_LOG_DIR,
    DEFAULT_PLAYBOOK_SUBDIR,
    DEFAULT_PROBE_ATTEMPTS,
    DEFAULT_PROBE_INTERVAL_SECONDS,
    DEFAULT_PROBE_SETTLE_SECONDS,
    DEFAULT_QA_INFRA_REPO_PATH,
    DEFAULT_SSH_CONFIG_FILE,
    DEFAULT_SSH_PRIVATE_KEY,
    NOT_SET,
    PATHS_ENV_FILE_NAME,
    STATE_FILE_NAME,
    SUMMARY_FILE_NAME,
)


# ============================================================================
# Configuration classes
# ============================================================================

class DeployConfig(BaseSettings):
    """Ansible deployment configuration, auto-loaded from env vars and the paths env file.

    Attributes:
        ansible_workspace: Working directory prepared on the bastion.
        ansible_inventory_file: Inventory passed to every playbook run.
        ansible_group_vars_file: Group vars file the inventory relies on.
        qa_infra_repo_path: Checkout of the repository holding the playbooks.
        ssh_config_file: SSH client config used to reach the nodes.
        ssh_private_key: Private key used by Ansible.
        ansible_log_dir: Directory for stage logs, state and summary files.
        ansible_timeout: Connection timeout passed to ``ansible-playbook --timeout``.
        ansible_verbosity: Verbosity flag (``-v`` to ``-vvvvv``) or empty.
        playbook_subdir: Path inside the repo where ``playbooks/`` lives.
        continue_on_failure: Whether to keep running stages after a failure.
        command_timeout: Wall-clock limit in seconds per playbook run, or None.
        probe_settle_seconds: Delay before probing a partially failed stage.
        probe_attempts: Number of probe attempts before giving up.
        probe_interval_seconds: Delay between probe attempts.
        shared_dir: Directory to publish state, summary and logs to, or None.
        kubeconfig_search_paths: Kubeconfig candidates, checked in order.
    """

    model_config = SettingsConfigDict(extra="ignore")

    ansible_workspace: Path = Path(DEFAULT_ANSIBLE_WORKSPACE)
    ansible_inventory_file: Path = Path(DEFAULT_INVENTORY_FILE)
    ansible_group_vars_file: Path = Path(DEFAULT_GROUP_VARS_FILE)
    qa_infra_repo_path: Path = Path(DEFAULT_QA_INFRA_REPO_PATH)
    ssh_config_file: Path = Path(DEFAULT_SSH_CONFIG_FILE)
    ssh_private_key: Path = Path(DEFAULT_SSH_PRIVATE_KEY)
    ansible_log_dir: Path = Path(DEFAULT_LOG_DIR)
    ansible_timeout: int = Field(default=DEFAULT_ANSIBLE_TIMEOUT, ge=1)
    ansible_verbosity: str = Field(default=DEFAULT_ANSIBLE_VERBOSITY, pattern=r"^(-v{1,5})?$")
    playbook_subdir: str = DEFAULT_PLAYBOOK_SUBDIR
    continue_on_failure: bool = False
    command_timeout: int | None = Field(default=None, ge=1)
    probe_settle_seconds: float = Field(default=DEFAULT_PROBE_SETTLE_SECONDS, ge=0)
    probe_attempts: int = Field(default=DEFAULT_PROBE_ATTEMPTS, ge=1, le=60)
    probe_interval_seconds: float = Field(default=DEFAULT_PROBE_INTERVAL_SECONDS, ge=0)
    shared_dir: Path | None = None
    kubeconfig_search_paths: tuple[Path, ...] = tuple(Path(p) for p in DEFAULT_KUBECONFIG_SEARCH_PATHS)

    @property
    def ansible_dir(self) -> Path:
        """Directory playbooks are run from."""
        return self.qa_infra_repo_path / self.playbook_subdir

    @property
    def state_file(self) -> Path:
        return self.ansible_log_dir / STATE_FILE_NAME

    @property
    def summary_file(self) -> Path:
        return self.ansible_log_dir / SUMMARY_FILE_NAME


class VersionConfig(BaseSettings):
    """Target software versions and hostnames recorded in the state document.

    Attributes:
        rke2_version: RKE2 release to deploy.
        rancher_version: Rancher release to deploy.
        hostname_prefix: Prefix of the provisioned node hostnames.
        rancher_hostname: Public hostname Rancher is served on.
    """

    model_config = SettingsConfigDict(extra="ignore")

    rke2_version: str = NOT_SET
    rancher_version: str = NOT_SET
    hostname_prefix: str = NOT_SET
    rancher_hostname: str = NOT_SET

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_not_set(cls, value: object) -> object:
        if value is None or value == "":
            return NOT_SET
        return value

    def as_run_config(self) -> dict[str, str]:
        """Return the versions as the string mapping stored on a run."""
        return {key: str(value) for key, value in self.model_dump().items()}

    def is_set(self, field: str) -> bool:
        value = getattr(self, field, NOT_SET)
        return bool(value) and value != NOT_SET


# ============================================================================
# Config loading
# ============================================================================

def default_env_file() -> Path:
    """Locate the paths env file written by bastion preparation."""
    return DeployConfig().ansible_workspace / PATHS_ENV_FILE_NAME


def load_config(env_file: Path | None = None) -> tuple[DeployConfig, VersionConfig]:
    """Load all configuration once, at process start.

    Resolution priority: environment variables > env file > defaults.

    Args:
        env_file: Paths env file, or None for ``<workspace>/ansible_paths.env``.

    Returns:
        Tuple of (DeployConfig, VersionConfig).
    """
    if env_file is None:
        env_file = default_env_file()

    if env_file.is_file():
        logger.info("Loading deployment paths from %s", env_file)
        return DeployConfig(_env_file=env_file), VersionConfig(_env_file=env_file)

    logger.warning("Paths env file not found: %s; using environment and defaults", env_file)
    return DeployConfig(), VersionConfig()


# ============================================================================
# Display
# ============================================================================

def display_config(cfg: DeployConfig, versions: VersionConfig) -> None:
    """Print the resolved configuration.

    Args:
        cfg: Resolved deployment configuration.
        versions: Resolved version configuration.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))

    console.print("[yellow]Ansible:[/yellow]")
    console.print(f"  inventory          : {cfg.ansible_inventory_file}")
    console.print(f"  playbook dir       : {cfg.ansible_dir / 'playbooks'}")
    console.print(f"  log dir            : {cfg.ansible_log_dir}")
    console.print(f"  timeout            : {cfg.ansible_timeout}")
    console.print(f"  verbosity          : {cfg.ansible_verbosity or '(none)'}")
    console.print(f"  command timeout    : {cfg.command_timeout or '(none)'}")
    console.print(f"  continue on failure: {cfg.continue_on_failure}")

    console.print("[yellow]Versions:[/yellow]")
    for key, value in versions.as_run_config().items():
        console.print(f"  {key:<19}: {value}")

    if cfg.shared_dir is not None:
        console.print("[yellow]Artifacts:[/yellow]")
        console.print(f"  shared dir         : {cfg.shared_dir}")
