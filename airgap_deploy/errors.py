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

"""Exception types raised by the tracker, runner, and probes."""

from __future__ import annotations


class DeploymentError(RuntimeError):
    """Base class for all airgap_deploy errors."""


class StateFileError(DeploymentError):
    """The state document could not be written, read, or parsed."""


class StageNotFoundError(DeploymentError):
    """A stage name is not part of the declared stage list."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown deployment stage: {name}")
        self.name = name


class InvalidTransitionError(DeploymentError):
    """A stage or run was asked to move to a status it cannot reach."""

    def __init__(self, name: str, current: str, target: str) -> None:
        super().__init__(f"Stage '{name}' cannot move from '{current}' to '{target}'")
        self.name = name
        self.current = current
        self.target = target


class ExternalCommandFailure(DeploymentError):
    """An external command exited non-zero.

    The runner records these on the stage instead of raising them.
    """

    def __init__(self, stage: str, exit_code: int) -> None:
        super().__init__(f"Stage '{stage}' failed with exit code {exit_code}")
        self.stage = stage
        self.exit_code = exit_code


class ProbeFailure(DeploymentError):
    """A health probe could not confirm the deployed system is ready."""


class EnvironmentValidationError(DeploymentError):
    """Required files, directories, or tools are missing."""
