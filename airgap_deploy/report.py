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

"""Human-readable deployment summaries."""

from __future__ import annotations

from pathlib import Path

from rich.table import Table

from airgap_deploy import console, logger
from airgap_deploy.constants import (
    NOT_AVAILABLE,
    STAGE_FAILURE,
    STAGE_RUNNING,
    STAGE_SUCCESS,
    SUMMARY_RULE,
)
from airgap_deploy.state import DeploymentRun
from airgap_deploy.utils import write_atomic

_STATUS_STYLES = {
    STAGE_SUCCESS: "green",
    STAGE_FAILURE: "red",
    STAGE_RUNNING: "yellow",
}


def _or_na(value: object) -> str:
    return NOT_AVAILABLE if value is None else str(value)


def render_summary(run: DeploymentRun) -> str:
    """Render a run as the plain-text deployment summary."""
    lines = [
        SUMMARY_RULE,
        "DEPLOYMENT SUMMARY",
        SUMMARY_RULE,
        f"Deployment ID: {run.deployment_id}",
        f"Start Time: {run.start_time}",
        f"End Time: {_or_na(run.end_time)}",
        f"Exit Code: {_or_na(run.exit_code)}",
        f"Status: {run.status}",
        "",
        "Configuration:",
    ]
    lines.extend(f"- {key}: {value}" for key, value in run.config.items())
    lines.extend(["", "Stages:"])
    lines.extend(
        f"- {name}: {rec.status} (start: {_or_na(rec.start_time)}, "
        f"end: {_or_na(rec.end_time)}, exit_code: {_or_na(rec.exit_code)})"
        for name, rec in run.stages.items()
    )
    lines.extend(["", SUMMARY_RULE, "END DEPLOYMENT SUMMARY", SUMMARY_RULE])
    return "\n".join(lines) + "\n"


def write_summary(run: DeploymentRun, path: Path) -> Path:
    """Write the rendered summary to *path* and return it."""
    write_atomic(path, render_summary(run))
    logger.info("Deployment summary generated: %s", path)
    return path


def print_summary(run: DeploymentRun) -> None:
    """Print a stage table for a run to the console."""
    table = Table(title=f"Deployment {run.deployment_id} ({run.status})")
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Exit code", justify="right")
    for name, rec in run.stages.items():
        style = _STATUS_STYLES.get(rec.status, "dim")
        table.add_row(
            name,
            f"[{style}]{rec.status}[/{style}]",
            _or_na(rec.start_time),
            _or_na(rec.end_time),
            _or_na(rec.exit_code),
        )
    console.print(table)
