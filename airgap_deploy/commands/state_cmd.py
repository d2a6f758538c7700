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

"""State subcommands (init, summary, stages)."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from airgap_deploy import console
from airgap_deploy.commands.deploy_cmd import validate_stage_names
from airgap_deploy.config import display_config, load_config
from airgap_deploy.orchestrator import run_init, run_summary
from airgap_deploy.stages import STAGE_CATALOG

app = typer.Typer(help="Inspect and initialize deployment state.")


@app.command()
def init(
    stages: list[str] | None = typer.Argument(None, help="Stages to track (default: all)"),
    env_file: Path | None = typer.Option(None, "--env-file", help="Paths env file"),
    skip_validation: bool = typer.Option(
        False, "--skip-validation", help="Skip environment validation"),
) -> None:
    """Validate the environment and create a fresh state document."""
    if stages:
        validate_stage_names(stages)
    cfg, versions = load_config(env_file)
    display_config(cfg, versions)
    run_init(cfg, versions, stages or None, validate=not skip_validation)


@app.command()
def summary(
    env_file: Path | None = typer.Option(None, "--env-file", help="Paths env file"),
    state_file: Path | None = typer.Option(
        None, "--state-file", help="State document (default: <log dir>/deployment_state.json)"),
) -> None:
    """Write and print the summary of an existing state document."""
    cfg, _ = load_config(env_file)
    path = run_summary(cfg, state_file)
    console.print(f"[green]\u2705 Summary written to {path}[/green]")


@app.command("stages")
def list_stages() -> None:
    """List catalog stages and their playbooks."""
    table = Table(title="Deployment stages")
    table.add_column("Stage")
    table.add_column("Playbook")
    table.add_column("Log file")
    for stage in STAGE_CATALOG.values():
        table.add_row(stage.name, stage.playbook, f"{stage.log_prefix}.log")
    console.print(table)
