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

"""Deployment state document and the tracker that owns it."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from airgap_deploy import logger
from airgap_deploy.constants import (
    RUN_FAILED,
    RUN_RUNNING,
    RUN_SUCCESS,
    STAGE_FAILURE,
    STAGE_PENDING,
    STAGE_RUNNING,
    STAGE_SUCCESS,
)
from airgap_deploy.errors import InvalidTransitionError, StageNotFoundError, StateFileError
from airgap_deploy.utils import utc_now, write_atomic

StageStatus = Literal["pending", "running", "success", "failure"]
RunStatus = Literal["running", "success", "failed"]


# ============================================================================
# Document models
# ============================================================================

class StageRecord(BaseModel):
    """Status and timing of one stage."""

    status: StageStatus = STAGE_PENDING
    start_time: str | None = None
    end_time: str | None = None
    exit_code: int | None = None


class DeploymentRun(BaseModel):
    """The state document for one deployment invocation.

    ``stages`` is keyed by stage name and keeps the declared pipeline order.
    """

    deployment_id: str
    start_time: str
    end_time: str | None = None
    exit_code: int | None = None
    status: RunStatus = RUN_RUNNING
    config: dict[str, str] = Field(default_factory=dict)
    stages: dict[str, StageRecord] = Field(default_factory=dict)

    @property
    def finalized(self) -> bool:
        return self.end_time is not None

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), indent=2) + "\n"

    @classmethod
    def from_json(cls, text: str) -> DeploymentRun:
        return cls.model_validate(json.loads(text))


# ============================================================================
# Tracker
# ============================================================================

class StageTracker:
    """Owns a DeploymentRun and persists it after every mutation.

    Args:
        path: State document location.
        run: The document to track.
        clock: Returns the current timestamp string.
    """

    def __init__(self, path: Path, run: DeploymentRun, clock: Callable[[], str] = utc_now) -> None:
        self.path = Path(path)
        self._run = run
        self._clock = clock

    @classmethod
    def create(
        cls,
        stage_names: Iterable[str],
        config: Mapping[str, str],
        path: Path,
        clock: Callable[[], str] = utc_now,
    ) -> StageTracker:
        """Start a new run with every stage pending and persist it.

        Args:
            stage_names: Stage names in pipeline order.
            config: Free-form string settings recorded on the run.
            path: State document location.
            clock: Returns the current timestamp string.

        Returns:
            Tracker for the new run.

        Raises:
            ValueError: If no stage names are given or a name repeats.
            StateFileError: If the document cannot be written.
        """
        names = list(stage_names)
        if not names:
            raise ValueError("A deployment run needs at least one stage")
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate stage names: {names}")

        run = DeploymentRun(
            deployment_id=str(uuid.uuid4()),
            start_time=clock(),
            config={str(k): str(v) for k, v in config.items()},
            stages={name: StageRecord() for name in names},
        )
        tracker = cls(path, run, clock)
        tracker._persist()
        logger.info("Deployment state file created: %s", tracker.path)
        return tracker

    @classmethod
    def load(cls, path: Path, clock: Callable[[], str] = utc_now) -> StageTracker:
        """Re-open an existing state document.

        Raises:
            StateFileError: If the file is missing, unreadable, or malformed.
        """
        path = Path(path)
        try:
            text = path.read_text()
        except OSError as err:
            raise StateFileError(f"Cannot read state file {path}: {err}") from err
        try:
            run = DeploymentRun.from_json(text)
        except (ValueError, ValidationError) as err:
            raise StateFileError(f"Malformed state file {path}: {err}") from err
        return cls(path, run, clock)

    @property
    def run(self) -> DeploymentRun:
        return self._run

    def stage(self, name: str) -> StageRecord:
        try:
            return self._run.stages[name]
        except KeyError:
            raise StageNotFoundError(name) from None

    def failed_stages(self) -> list[str]:
        return [name for name, rec in self._run.stages.items() if rec.status == STAGE_FAILURE]

    # -- Stage transitions --

    def mark_stage_start(self, name: str) -> None:
        record = self.stage(name)
        if record.status != STAGE_PENDING:
            raise InvalidTransitionError(name, record.status, STAGE_RUNNING)
        record.status = STAGE_RUNNING
        record.start_time = self._clock()
        self._persist()
        logger.info("Stage '%s' status updated to '%s'", name, STAGE_RUNNING)

    def mark_stage_result(self, name: str, success: bool, exit_code: int) -> None:
        record = self.stage(name)
        target = STAGE_SUCCESS if success else STAGE_FAILURE
        if record.status != STAGE_RUNNING:
            raise InvalidTransitionError(name, record.status, target)
        record.status = target
        record.end_time = self._clock()
        record.exit_code = exit_code
        self._persist()
        logger.info("Stage '%s' status updated to '%s' (exit code %d)", name, target, exit_code)

    def reclassify_stage_success(self, name: str) -> None:
        """Overwrite a failed stage as successful after a health probe passed.

        A stage that is already ``success`` is left untouched.

        Raises:
            StageNotFoundError: If the stage is not declared.
            InvalidTransitionError: If the stage is neither ``failure`` nor ``success``.
        """
        record = self.stage(name)
        if record.status == STAGE_SUCCESS:
            return
        if record.status != STAGE_FAILURE:
            raise InvalidTransitionError(name, record.status, STAGE_SUCCESS)
        record.status = STAGE_SUCCESS
        record.end_time = self._clock()
        record.exit_code = 0
        self._persist()
        logger.info("Stage '%s' reclassified as '%s'", name, STAGE_SUCCESS)

    # -- Run completion --

    def finalize(self, exit_code: int) -> DeploymentRun:
        """Close the run. Later calls return the run unchanged."""
        if self._run.finalized:
            return self._run
        self._run.end_time = self._clock()
        self._run.exit_code = exit_code
        self._run.status = RUN_SUCCESS if exit_code == 0 else RUN_FAILED
        self._persist()
        logger.info("Final deployment state updated (status: %s, exit_code: %d)",
                    self._run.status, exit_code)
        return self._run

    def _persist(self) -> None:
        write_atomic(self.path, self._run.to_json())
