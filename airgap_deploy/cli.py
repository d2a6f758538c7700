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

"""
cli.py - CLI for staged Ansible deployments of airgapped RKE2 clusters.

Subcommands:
    deploy     Run deployment stages (all, custom)
    state      Inspect and initialize deployment state (init, summary, stages)

Examples:
    # Run every stage with the paths written by bastion preparation
    airgap-deploy deploy all

    # Re-run only the Rancher stage
    airgap-deploy deploy custom rancher-deploy

    # Keep going after a failed stage
    airgap-deploy deploy all --continue-on-failure

    # Regenerate the summary from the last state document
    airgap-deploy state summary

For detailed usage information, run: airgap-deploy --help
"""

from __future__ import annotations

import logging
import sys

import typer

from airgap_deploy import console
from airgap_deploy.commands import deploy_cmd, state_cmd

app = typer.Typer(
    help="Staged Ansible deployment runner for airgapped RKE2 clusters.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(deploy_cmd.app, name="deploy")
app.add_typer(state_cmd.app, name="state")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
