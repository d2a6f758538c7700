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

"""ansible-playbook command construction, rendering, and execution."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

import sh

from airgap_deploy import console, logger
from airgap_deploy.config import DeployConfig, VersionConfig
from airgap_deploy.constants import (
    ANSIBLE_ENV,
    ANSIBLE_PLAYBOOK_BIN,
    EXIT_CODE_NOT_LAUNCHED,
    EXIT_CODE_PLAYBOOK_MISSING,
    EXIT_CODE_TIMEOUT,
    LOGGABLE_ENV_VARS,
    REDACTED,
)
from airgap_deploy.stages import StageDefinition

# Extra-var names whose values may appear in logged commands.
LOGGABLE_EXTRA_VARS = frozenset({"rke2_version", "rancher_version"})


@dataclass(frozen=True)
class PlaybookCommand:
    """A fully resolved external command.

    Attributes:
        argv: Program and arguments, never passed through a shell.
        cwd: Working directory for the process.
        env: Variables laid over the current process environment.
    """

    argv: tuple[str, ...]
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)


def build_playbook_command(
    stage: StageDefinition,
    cfg: DeployConfig,
    versions: VersionConfig,
) -> PlaybookCommand:
    """Build the ansible-playbook invocation for a stage.

    Args:
        stage: Stage whose playbook to run.
        cfg: Deployment configuration (inventory, verbosity, timeout).
        versions: Version configuration used for ``-e`` extra variables.

    Returns:
        The command to execute.
    """
    argv = [
        ANSIBLE_PLAYBOOK_BIN,
        "-i", str(cfg.ansible_inventory_file),
        f"playbooks/{stage.playbook}",
    ]
    if cfg.ansible_verbosity:
        argv.append(cfg.ansible_verbosity)
    argv.extend(["--timeout", str(cfg.ansible_timeout)])
    for var, version_field in stage.extra_vars.items():
        if versions.is_set(version_field):
            argv.extend(["-e", f"{var}={getattr(versions, version_field)}"])
    return PlaybookCommand(argv=tuple(argv), cwd=cfg.ansible_dir, env=dict(ANSIBLE_ENV))


def _render_extra_var(arg: str) -> str:
    name, sep, value = arg.partition("=")
    if not sep or name in LOGGABLE_EXTRA_VARS:
        return arg
    return f"{name}={REDACTED}"


def render_command(cmd: PlaybookCommand) -> str:
    """Render a command for logs, showing only allow-listed values.

    Environment variables outside ``LOGGABLE_ENV_VARS`` and ``-e`` values
    outside ``LOGGABLE_EXTRA_VARS`` are replaced with a placeholder.

    Args:
        cmd: Command to render.

    Returns:
        A shell-like single-line representation.
    """
    parts = [
        f"{name}={shlex.quote(value) if name in LOGGABLE_ENV_VARS else REDACTED}"
        for name, value in sorted(cmd.env.items())
    ]
    args = list(cmd.argv)
    for i in range(1, len(args)):
        if args[i - 1] in ("-e", "--extra-vars"):
            args[i] = _render_extra_var(args[i])
    parts.append(shlex.join(args))
    return " ".join(parts)


def execute_command(
    cmd: PlaybookCommand,
    log_file: Path,
    timeout: float | None = None,
    echo: bool = True,
) -> int:
    """Run a command, teeing combined stdout/stderr into *log_file*.

    Args:
        cmd: Command to run.
        log_file: File receiving the combined output.
        timeout: Seconds before the process is killed, or None to wait forever.
        echo: Whether to also stream output to the console.

    Returns:
        The process exit code, ``EXIT_CODE_TIMEOUT`` if it was killed on
        timeout, or ``EXIT_CODE_NOT_LAUNCHED`` if it could not be started.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(log_file, "w") as log:

        def _tee(line: str) -> None:
            log.write(line)
            if echo:
                console.out(line, end="", highlight=False)

        try:
            program = sh.Command(cmd.argv[0])
            program(
                *cmd.argv[1:],
                _cwd=str(cmd.cwd),
                _env={**os.environ, **cmd.env},
                _err_to_out=True,
                _out=_tee,
                _timeout=timeout,
            )
        except sh.CommandNotFound as exc:
            return _not_launched(log, exc)
        except sh.TimeoutException:
            log.write(f"Command killed after {timeout}s timeout\n")
            logger.error("Command killed after %ss timeout", timeout)
            return EXIT_CODE_TIMEOUT
        except sh.ErrorReturnCode as err:
            return err.exit_code
        except OSError as exc:
            return _not_launched(log, exc)
    return 0


def _not_launched(log, exc: Exception) -> int:
    log.write(f"Command could not be started: {exc}\n")
    logger.error("Command could not be started: %s", exc)
    return EXIT_CODE_NOT_LAUNCHED


class PlaybookExecutor:
    """Runs a stage's playbook and returns its exit code.

    Args:
        cfg: Deployment configuration.
        versions: Version configuration for extra variables.
        echo: Whether to stream playbook output to the console.
    """

    def __init__(self, cfg: DeployConfig, versions: VersionConfig, echo: bool = True) -> None:
        self.cfg = cfg
        self.versions = versions
        self.echo = echo

    def playbook_path(self, stage: StageDefinition) -> Path:
        return self.cfg.ansible_dir / "playbooks" / stage.playbook

    def __call__(self, stage: StageDefinition, log_file: Path) -> int:
        playbook = self.playbook_path(stage)
        if not playbook.is_file():
            console.print(f"[red]\u274c Playbook not found: {playbook}[/red]")
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(f"Playbook not found: {playbook}\n")
            return EXIT_CODE_PLAYBOOK_MISSING

        cmd = build_playbook_command(stage, self.cfg, self.versions)
        console.print(f"[yellow]\u2139\ufe0f  Running playbook: {stage.playbook}[/yellow]")
        logger.info("Executing: %s", render_command(cmd))
        return execute_command(cmd, log_file, timeout=self.cfg.command_timeout, echo=self.echo)
