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

"""Deploy subcommands (all, custom)."""

from __future__ import annotations

from pathlib import Path

import typer

from airgap_deploy.config import display_config, load_config
from airgap_deploy.errors import StageNotFoundError
from airgap_deploy.orchestrator import apply_overrides, run_deploy
from airgap_deploy.stages import STAGE_CATALOG

app = typer.Typer(help="Run deployment stages.")


def validate_stage_names(stages: list[str]) -> None:
    """Validate custom stage names before anything is written.

    Args:
        stages: Stage names given on the command line.

    Raises:
        typer.BadParameter: If the list is empty, repeats a name, or names an unknown stage.
    """
    if not stages:
        raise typer.BadParameter("At least one stage is required")
    unknown = [name for name in stages if name not in STAGE_CATALOG]
    if unknown:
        raise typer.BadParameter(
            f"{StageNotFoundError(unknown[0])}. Available: {', '.join(STAGE_CATALOG)}"
        )
    repeated = sorted({name for name in stages if stages.count(name) > 1})
    if repeated:
        raise typer.BadParameter(f"Stage requested more than once: {', '.join(repeated)}")


def _deploy(
    stages: list[str] | None,
    env_file: Path | None,
    continue_on_failure: bool,
    timeout: int | None,
    command_timeout: int | None,
    skip_validation: bool,
) -> None:
    cfg, versions = load_config(env_file)
    cfg = apply_overrides(
        cfg,
        continue_on_failure=continue_on_failure or None,
        timeout=timeout,
        command_timeout=command_timeout,
    )
    display_config(cfg, versions)
    outcome = run_deploy(cfg, versions, stages, validate=not skip_validation)
    raise typer.Exit(code=outcome.exit_code)


@app.command("all")
def all_stages(
    env_file: Path | None = typer.Option(
        None, "--env-file", help="Paths env file (default: <workspace>/ansible_paths.env)"),
    continue_on_failure: bool = typer.Option(
        False, "--continue-on-failure", help="Keep running stages after a failure (overrides CONTINUE_ON_FAILURE)"),
    timeout: int | None = typer.Option(
        None, "--timeout", min=1, help="ansible-playbook connection timeout (overrides ANSIBLE_TIMEOUT)"),
    command_timeout: int | None = typer.Option(
        None, "--command-timeout", min=1, help="Wall-clock limit per playbook run in seconds"),
    skip_validation: bool = typer.Option(
        False, "--skip-validation", help="Skip tool and environment validation"),
) -> None:
    """Run every stage in catalog order: ssh-setup, rke2-deploy, kubectl-setup, rancher-deploy."""
    _deploy(None, env_file, continue_on_failure, timeout, command_timeout, skip_validation)


@app.command()
def custom(
    stages: list[str] = typer.Argument(..., help="Stage names, run in the order given"),
    env_file: Path | None = typer.Option(
        None, "--env-file", help="Paths env file (default: <workspace>/ansible_paths.env)"),
    continue_on_failure: bool = typer.Option(
        False, "--continue-on-failure", help="Keep running stages after a failure (overrides CONTINUE_ON_FAILURE)"),
    timeout: int | None = typer.Option(
        None, "--timeout", min=1, help="ansible-playbook connection timeout (overrides ANSIBLE_TIMEOUT)"),
    command_timeout: int | None = typer.Option(
        None, "--command-timeout", min=1, help="Wall-clock limit per playbook run in seconds"),
    skip_validation: bool = typer.Option(
        False, "--skip-validation", help="Skip tool and environment validation"),
) -> None:
    """Run a chosen subset of stages.

    Unknown stage names are rejected before any state is written.
    """
    validate_stage_names(stages)
    _deploy(stages, env_file, continue_on_failure, timeout, command_timeout, skip_validation)
