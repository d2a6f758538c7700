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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from rich.panel import Panel

from airgap_deploy import console, logger
from airgap_deploy.config import DeployConfig, VersionConfig
from airgap_deploy.environment import (
    check_prerequisites,
    publish_artifacts,
    validate_deployment_environment,
)
from airgap_deploy.playbook import PlaybookExecutor
from airgap_deploy.probes import Probe, build_probes
from airgap_deploy.report import print_summary, write_summary
from airgap_deploy.runner import CommandExecutor, RunnerOptions, RunOutcome, StageRunner
from airgap_deploy.stages import resolve_stages
from airgap_deploy.state import StageTracker

# ============================================================================
# Internal helpers
# ============================================================================


def apply_overrides(
    cfg: DeployConfig,
    *,
    continue_on_failure: bool | None = None,
    timeout: int | None = None,
    command_timeout: int | None = None,
) -> DeployConfig:
    """Lay CLI overrides over a loaded DeployConfig.

    Args:
        cfg: Loaded configuration.
        continue_on_failure: Override for ``continue_on_failure``, or None.
        timeout: Override for ``ansible_timeout``, or None.
        command_timeout: Override for ``command_timeout``, or None.

    Returns:
        The configuration with overrides applied.
    """
    overrides: dict = {}
    if continue_on_failure is not None:
        overrides["continue_on_failure"] = continue_on_failure
    if timeout is not None:
        overrides["ansible_timeout"] = timeout
    if command_timeout is not None:
        overrides["command_timeout"] = command_timeout
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    return cfg


def _runner_options(cfg: DeployConfig) -> RunnerOptions:
    return RunnerOptions(
        continue_on_failure=cfg.continue_on_failure,
        probe_settle_seconds=cfg.probe_settle_seconds,
    )


# ============================================================================
# Public API
# ============================================================================


def run_init(
    cfg: DeployConfig,
    versions: VersionConfig,
    stage_names: Sequence[str] | None = None,
    validate: bool = True,
) -> StageTracker:
    """Validate the environment and create a fresh state document.

    Args:
        cfg: Deployment configuration.
        versions: Version configuration recorded on the run.
        stage_names: Stages to track, or None for the full catalog.
        validate: Whether to validate the bastion environment first.

    Returns:
        Tracker for the new run.

    Raises:
        StageNotFoundError: If a stage name is not in the catalog.
        EnvironmentValidationError: If validation is enabled and fails.
        StateFileError: If the state document cannot be written.
    """
    stages = resolve_stages(stage_names)
    if validate:
        validate_deployment_environment(cfg)

    cfg.ansible_log_dir.mkdir(parents=True, exist_ok=True)
    tracker = StageTracker.create(
        [stage.name for stage in stages], versions.as_run_config(), cfg.state_file,
    )
    console.print(f"[green]\u2705 Deployment state initialized: {tracker.path}[/green]")
    return tracker


def run_deploy(
    cfg: DeployConfig,
    versions: VersionConfig,
    stage_names: Sequence[str] | None = None,
    *,
    validate: bool = True,
    executor: CommandExecutor | None = None,
    probes: Mapping[str, Probe] | None = None,
) -> RunOutcome:
    """Run a deployment: init, execute stages, summarize, publish.

    Args:
        cfg: Deployment configuration.
        versions: Version configuration for extra vars and the run record.
        stage_names: Stages to run in order, or None for the full catalog.
        validate: Whether to check tools and the bastion environment first.
        executor: Stage command executor, or None for ansible-playbook.
        probes: Health probes per stage, or None for the built-in probes.

    Returns:
        The run outcome; its exit code is the process exit status.

    Raises:
        StageNotFoundError: If a stage name is not in the catalog.
        EnvironmentValidationError: If validation is enabled and fails.
        StateFileError: If the state document cannot be written.
    """
    stages = resolve_stages(stage_names)
    if validate:
        check_prerequisites()

    tracker = run_init(cfg, versions, [stage.name for stage in stages], validate=validate)

    if executor is None:
        executor = PlaybookExecutor(cfg, versions)
    if probes is None:
        probes = build_probes(cfg)

    runner = StageRunner(
        tracker,
        stages,
        executor,
        cfg.ansible_log_dir,
        probes=probes,
        options=_runner_options(cfg),
    )
    outcome = runner.run()

    write_summary(outcome.run, cfg.summary_file)
    print_summary(outcome.run)
    if cfg.shared_dir is not None:
        publish_artifacts(cfg, stages)

    logger.info("Deployment %s finished with exit code %d",
                outcome.run.deployment_id, outcome.exit_code)
    return outcome


def run_summary(cfg: DeployConfig, state_file: Path | None = None) -> Path:
    """Re-open a state document and write and print its summary.

    Args:
        cfg: Deployment configuration locating the state and summary files.
        state_file: State document to read, or None for the configured one.

    Returns:
        Path of the written summary.

    Raises:
        StateFileError: If the state document is missing or malformed.
    """
    tracker = StageTracker.load(state_file or cfg.state_file)
    console.print(Panel.fit("Deployment summary", style="bold blue"))
    path = write_summary(tracker.run, cfg.summary_file)
    print_summary(tracker.run)
    return path
