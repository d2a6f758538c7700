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

"""Post-hoc health probes used to reclassify partially failed stages."""

from __future__ import annotations

import ipaddress
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Any

import yaml
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from airgap_deploy import console, logger
from airgap_deploy.config import DeployConfig
from airgap_deploy.constants import (
    BASTION_HOST_NAMES,
    KUBE_API_PORT,
    NS_CATTLE_SYSTEM,
    STAGE_RANCHER_DEPLOY,
    STAGE_RKE2_DEPLOY,
)
from airgap_deploy.errors import ProbeFailure, StateFileError
from airgap_deploy.utils import run_kubectl, write_atomic

Probe = Callable[[], bool]


# ============================================================================
# Kubeconfig helpers
# ============================================================================

def find_kubeconfig(search_paths: Iterable[Path]) -> Path | None:
    """Return the first existing kubeconfig from *search_paths*, or None."""
    for path in search_paths:
        if Path(path).is_file():
            logger.info("Found kubeconfig at: %s", path)
            return Path(path)
    logger.warning("Kubeconfig not found in any expected location")
    return None


def _iter_hosts(node: Any) -> Iterator[tuple[str, dict]]:
    """Yield every (host name, host vars) pair in an inventory tree."""
    if not isinstance(node, dict):
        return
    hosts = node.get("hosts")
    if isinstance(hosts, dict):
        for name, host_vars in hosts.items():
            yield name, host_vars if isinstance(host_vars, dict) else {}
    for key, child in node.items():
        if key == "hosts":
            continue
        if key == "children" and isinstance(child, dict):
            for group in child.values():
                yield from _iter_hosts(group)
        elif isinstance(child, dict):
            yield from _iter_hosts(child)


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def extract_bastion_host(inventory_file: Path) -> str | None:
    """Find the bastion address in a YAML inventory.

    A host named like the bastion wins; otherwise the first host whose
    ``ansible_host`` is a literal IP address is used.

    Args:
        inventory_file: Ansible YAML inventory.

    Returns:
        The bastion address, or None if none can be determined.
    """
    try:
        with open(inventory_file) as f:
            inventory = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Cannot read inventory %s: %s", inventory_file, exc)
        return None

    hosts = list(_iter_hosts(inventory))
    for name, host_vars in hosts:
        if name in BASTION_HOST_NAMES and host_vars.get("ansible_host"):
            return str(host_vars["ansible_host"])
    for _, host_vars in hosts:
        address = str(host_vars.get("ansible_host", ""))
        if _is_ip(address):
            return address
    return None


def update_kubeconfig_server(kubeconfig: Path, server_url: str) -> None:
    """Point every cluster entry of *kubeconfig* at *server_url*.

    Args:
        kubeconfig: Kubeconfig file to rewrite in place.
        server_url: API server URL (e.g. ``https://10.0.0.5:6443``).

    Raises:
        ValueError: If the file is not a kubeconfig mapping.
    """
    with open(kubeconfig) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{kubeconfig} is not a kubeconfig mapping")
    for entry in data.get("clusters") or []:
        cluster = entry.get("cluster") if isinstance(entry, dict) else None
        if isinstance(cluster, dict):
            logger.info("Kubeconfig server %s -> %s", cluster.get("server"), server_url)
            cluster["server"] = server_url
    write_atomic(kubeconfig, yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


# ============================================================================
# Probes
# ============================================================================

def count_ready_nodes(kubeconfig: Path) -> tuple[int, int]:
    """Return (ready, total) node counts.

    Raises:
        ProbeFailure: If kubectl cannot list nodes.
    """
    ok, stdout, stderr = run_kubectl(["get", "nodes", "--no-headers"], kubeconfig=kubeconfig)
    if not ok:
        raise ProbeFailure(f"kubectl get nodes failed: {stderr.strip()[:200]}")
    rows = [line.split() for line in stdout.splitlines() if line.strip()]
    ready = sum(1 for row in rows if len(row) > 1 and row[1] == "Ready")
    return ready, len(rows)


def probe_rke2_cluster(cfg: DeployConfig) -> None:
    """Check that the RKE2 cluster answers and has ready nodes.

    The kubeconfig server is first rewritten to the bastion address so the
    API is reachable from this host.

    Raises:
        ProbeFailure: If no kubeconfig exists or no node is ready.
    """
    kubeconfig = find_kubeconfig(cfg.kubeconfig_search_paths)
    if kubeconfig is None:
        raise ProbeFailure("Kubeconfig not found, cannot validate RKE2 deployment")

    bastion = extract_bastion_host(cfg.ansible_inventory_file)
    if bastion is not None:
        try:
            update_kubeconfig_server(kubeconfig, f"https://{bastion}:{KUBE_API_PORT}")
        except (OSError, ValueError, yaml.YAMLError, StateFileError) as exc:
            logger.warning("Could not rewrite kubeconfig server: %s", exc)
    else:
        logger.warning("Could not determine bastion address; keeping kubeconfig server")

    ready, total = count_ready_nodes(kubeconfig)
    if ready == 0:
        raise ProbeFailure(f"RKE2 cluster is not operational (0/{total} nodes ready)")
    console.print(f"[green]\u2713 RKE2 cluster is operational ({ready}/{total} nodes ready)[/green]")


def probe_rancher(cfg: DeployConfig) -> None:
    """Check that at least one Rancher pod is fully ready and running.

    Raises:
        ProbeFailure: If no kubeconfig exists or no Rancher pod is ready.
    """
    kubeconfig = find_kubeconfig(cfg.kubeconfig_search_paths)
    if kubeconfig is None:
        raise ProbeFailure("Kubeconfig not found, cannot validate Rancher deployment")

    ok, stdout, stderr = run_kubectl(
        ["get", "pods", "-n", NS_CATTLE_SYSTEM, "--no-headers"], kubeconfig=kubeconfig,
    )
    if not ok:
        raise ProbeFailure(f"kubectl get pods failed: {stderr.strip()[:200]}")
    for line in stdout.splitlines():
        cols = line.split()
        if len(cols) < 3 or cols[2] != "Running":
            continue
        ready, _, wanted = cols[1].partition("/")
        if ready == wanted and ready not in ("", "0"):
            console.print("[green]\u2713 Rancher pods are operational[/green]")
            return
    raise ProbeFailure("Rancher pods are not operational")


def make_probe(
    check: Callable[[DeployConfig], None],
    cfg: DeployConfig,
) -> Probe:
    """Wrap a check in the configured retry policy.

    Args:
        check: Callable raising ProbeFailure when the system is unhealthy.
        cfg: Configuration with probe attempts and interval.

    Returns:
        A callable returning True when the check passed within the attempts.
    """

    @retry(
        stop=stop_after_attempt(cfg.probe_attempts),
        wait=wait_fixed(cfg.probe_interval_seconds),
        retry=retry_if_exception_type(ProbeFailure),
        reraise=True,
    )
    def _attempt() -> None:
        check(cfg)

    def _probe() -> bool:
        try:
            _attempt()
        except ProbeFailure as exc:
            console.print(f"[red]\u274c {exc}[/red]")
            return False
        return True

    return _probe


def build_probes(cfg: DeployConfig) -> dict[str, Probe]:
    """Return the health probe for each reclassifiable stage."""
    return {
        STAGE_RKE2_DEPLOY: make_probe(probe_rke2_cluster, cfg),
        STAGE_RANCHER_DEPLOY: make_probe(probe_rancher, cfg),
    }
