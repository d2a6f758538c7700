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

"""Utility functions for timestamps, atomic writes, kubectl, and command checks."""

from __future__ import annotations

import os
import subprocess
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import sh

from airgap_deploy.constants import DEFAULT_KUBECTL_TIMEOUT, TIMESTAMP_FORMAT
from airgap_deploy.errors import EnvironmentValidationError, StateFileError


def utc_now() -> str:
    """Current UTC time as a second-precision ISO-8601 string."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def write_atomic(path: Path, text: str) -> None:
    """Replace *path* with *text* so readers never see a partial file.

    The content goes to a temporary file in the same directory, is fsynced,
    and is then renamed over the target.

    Args:
        path: Destination file.
        text: Full file content.

    Raises:
        StateFileError: If the directory or file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as err:
        raise StateFileError(f"Cannot write {path}: {err}") from err


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        EnvironmentValidationError: If the command is not found.
    """
    try:
        found = sh.which(cmd)
    except sh.ErrorReturnCode:
        found = None
    if not found:
        raise EnvironmentValidationError(
            f"Required command '{cmd}' not found. Please install it first."
        )


def run_kubectl(
    args: list[str],
    kubeconfig: Path | None = None,
    timeout: int = DEFAULT_KUBECTL_TIMEOUT,
) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Probes parse stdout line by line, so stdout and stderr are kept apart.

    Args:
        args: kubectl arguments (e.g. ``["get", "nodes", "--no-headers"]``).
        kubeconfig: Kubeconfig to pass with ``--kubeconfig``, or None.
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    cmd = ["kubectl"]
    if kubeconfig is not None:
        cmd.append(f"--kubeconfig={kubeconfig}")
    try:
        result = subprocess.run(
            [*cmd, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)
