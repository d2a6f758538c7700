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

"""Sequential stage execution with failure reclassification."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from rich.panel import Panel

from airgap_deploy import console, logger
from airgap_deploy.constants import (
    ANSIBLE_PARTIAL_FAILURE_EXIT_CODE,
    EXIT_CODE_NOT_LAUNCHED,
    RECLASSIFIABLE_STAGES,
)
from airgap_deploy.errors import ExternalCommandFailure, ProbeFailure, StateFileError
from airgap_deploy.probes import Probe
from airgap_deploy.stages import StageDefinition
from airgap_deploy.state import DeploymentRun, StageTracker

CommandExecutor = Callable[[StageDefinition, Path], int]


@dataclass(frozen=True)
class RunnerOptions:
    """Policy knobs for a StageRunner.

    Attributes:
        continue_on_failure: Whether to run remaining stages after a failure.
        reclassifiable: Stages whose partial failures may be probed.
        partial_failure_exit_code: Exit code that triggers a probe.
        probe_settle_seconds: Delay before probing.
    """

    continue_on_failure: bool = False
    reclassifiable: frozenset[str] = RECLASSIFIABLE_STAGES
    partial_failure_exit_code: int = ANSIBLE_PARTIAL_FAILURE_EXIT_CODE
    probe_settle_seconds: float = 0


@dataclass(frozen=True)
class RunOutcome:
    """Result of a StageRunner.run call."""

    exit_code: int
    run: DeploymentRun
    failed_stages: list[str] = field(default_factory=list)


class StageRunner:
    """Executes stages in declared order and records results on a tracker.

    Stage failures are recorded, never raised; ``run`` reports them through
    its exit code.

    Args:
        tracker: Tracker owning the run's state document.
        stages: Stages to execute, in order.
        executor: Runs a stage's command and returns its exit code.
        log_dir: Directory receiving ``<log_prefix>.log`` per stage.
        probes: Health probe per reclassifiable stage name.
        options: Continuation and reclassification policy.
        sleep: Sleep function used for the probe settle delay.
    """

    def __init__(
        self,
        tracker: StageTracker,
        stages: Sequence[StageDefinition],
        executor: CommandExecutor,
        log_dir: Path,
        probes: Mapping[str, Probe] | None = None,
        options: RunnerOptions | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.tracker = tracker
        self.stages = list(stages)
        self.executor = executor
        self.log_dir = Path(log_dir)
        self.probes = dict(probes or {})
        self.options = options or RunnerOptions()
        self._sleep = sleep

    def log_file(self, stage: StageDefinition) -> Path:
        return self.log_dir / f"{stage.log_prefix}.log"

    def run(self) -> RunOutcome:
        """Run every stage, then finalize the tracker.

        The tracker is finalized as failed before any unexpected error
        propagates, so the run never stays ``running``.

        Returns:
            The outcome; ``exit_code`` is 0 iff no stage ended in failure.
        """
        names = [stage.name for stage in self.stages]
        logger.info("Running deployment stages: %s", " ".join(names))

        failed: list[str] = []
        try:
            for stage in self.stages:
                console.print(Panel.fit(f"Stage: {stage.name}", style="bold blue"))
                if self._run_stage(stage):
                    console.print(f"[green]\u2705 Stage '{stage.name}' succeeded[/green]")
                    continue

                failed.append(stage.name)
                if not self.options.continue_on_failure:
                    console.print(f"[red]\u274c Stage '{stage.name}' failed, stopping deployment[/red]")
                    break
                console.print(
                    f"[yellow]\u26a0\ufe0f  Stage '{stage.name}' failed, continuing deployment[/yellow]"
                )
        except BaseException:
            logger.exception("Deployment aborted, marking run as failed")
            try:
                self.tracker.finalize(1)
            except StateFileError as exc:
                logger.error("Could not finalize deployment state: %s", exc)
            raise

        exit_code = 1 if failed else 0
        if failed:
            console.print(Panel.fit(f"FAILED STAGES: {' '.join(failed)}", style="bold red"))
        else:
            console.print(Panel.fit("ALL STAGES COMPLETED SUCCESSFULLY", style="bold green"))

        run = self.tracker.finalize(exit_code)
        return RunOutcome(exit_code=exit_code, run=run, failed_stages=failed)

    def _run_stage(self, stage: StageDefinition) -> bool:
        """Run one stage; return True if it ends as success."""
        self.tracker.mark_stage_start(stage.name)
        try:
            exit_code = self.executor(stage, self.log_file(stage))
        except Exception as exc:
            logger.error("Stage '%s' could not be executed: %s", stage.name, exc)
            exit_code = EXIT_CODE_NOT_LAUNCHED

        if exit_code == 0:
            self.tracker.mark_stage_result(stage.name, True, 0)
            return True

        self.tracker.mark_stage_result(stage.name, False, exit_code)
        failure = ExternalCommandFailure(stage.name, exit_code)
        console.print(f"[red]\u274c {failure}[/red]")

        if self._reclassifiable(stage.name, exit_code) and self._probe(stage.name):
            console.print(
                f"[green]\u2705 Despite task failures, '{stage.name}' appears to be successful[/green]"
            )
            self.tracker.reclassify_stage_success(stage.name)
            return True

        logger.error("Critical failure in stage: %s", stage.name)
        return False

    def _reclassifiable(self, name: str, exit_code: int) -> bool:
        return (
            name in self.options.reclassifiable
            and exit_code == self.options.partial_failure_exit_code
            and name in self.probes
        )

    def _probe(self, name: str) -> bool:
        console.print(
            f"[yellow]\u2139\ufe0f  Exit code {self.options.partial_failure_exit_code} for '{name}', "
            "checking if deployment actually succeeded...[/yellow]"
        )
        if self.options.probe_settle_seconds:
            self._sleep(self.options.probe_settle_seconds)
        try:
            healthy = self.probes[name]()
        except ProbeFailure as exc:
            logger.error("Health check for '%s' failed: %s", name, exc)
            return False
        except Exception as exc:
            logger.error("Health check for '%s' raised an error: %s", name, exc)
            return False
        if not healthy:
            logger.error("Deployment check failed, keeping '%s' as failure", name)
        return healthy
