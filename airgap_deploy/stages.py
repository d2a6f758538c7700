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

"""Stage catalog: the fixed mapping from stage name to playbook."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from airgap_deploy.constants import STAGES_FILE
from airgap_deploy.errors import StageNotFoundError


@dataclass(frozen=True)
class StageDefinition:
    """A deployment stage and the playbook it runs.

    Attributes:
        name: Stage name, unique within the catalog.
        playbook: Playbook path relative to the ``playbooks/`` directory.
        log_prefix: Base name of the stage log file.
        extra_vars: Ansible variable name to VersionConfig field name.
    """

    name: str
    playbook: str
    log_prefix: str
    extra_vars: dict[str, str] = field(default_factory=dict)


def load_stage_catalog(path: Path = STAGES_FILE) -> dict[str, StageDefinition]:
    """Load stage definitions from YAML, preserving declared order.

    Args:
        path: Stage catalog YAML file.

    Returns:
        Ordered mapping of stage name to definition.

    Raises:
        ValueError: If a stage name is declared twice.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    catalog: dict[str, StageDefinition] = {}
    for entry in data.get("stages", []):
        stage = StageDefinition(
            name=entry["name"],
            playbook=entry["playbook"],
            log_prefix=entry.get("log_prefix", entry["name"].replace("-", "_")),
            extra_vars=dict(entry.get("extra_vars") or {}),
        )
        if stage.name in catalog:
            raise ValueError(f"Stage declared twice in {path}: {stage.name}")
        catalog[stage.name] = stage
    return catalog


STAGE_CATALOG = load_stage_catalog()
DEFAULT_STAGES = tuple(STAGE_CATALOG)


def resolve_stages(
    names: Iterable[str] | None = None,
    catalog: dict[str, StageDefinition] | None = None,
) -> list[StageDefinition]:
    """Resolve stage names against the catalog, keeping the given order.

    Args:
        names: Stage names to run, or None for every catalog stage.
        catalog: Catalog to resolve against, or None for the packaged one.

    Returns:
        Stage definitions in the requested order.

    Raises:
        StageNotFoundError: If a name is not in the catalog.
        ValueError: If no stages are requested or a name repeats.
    """
    if catalog is None:
        catalog = STAGE_CATALOG
    requested = list(catalog) if names is None else list(names)
    if not requested:
        raise ValueError("No deployment stages requested")

    seen: set[str] = set()
    resolved: list[StageDefinition] = []
    for name in requested:
        if name not in catalog:
            raise StageNotFoundError(name)
        if name in seen:
            raise ValueError(f"Stage requested twice: {name}")
        seen.add(name)
        resolved.append(catalog[name])
    return resolved
