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

"""Constants for stage status, file names, exit codes, and default paths."""

from __future__ import annotations

from pathlib import Path

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent
STAGES_FILE = PACKAGE_DIR / "stages.yaml"

# -- Stage status --
STAGE_PENDING = "pending"
STAGE_RUNNING = "running"
STAGE_SUCCESS = "success"
STAGE_FAILURE = "failure"

# -- Run status --
RUN_RUNNING = "running"
RUN_SUCCESS = "success"
RUN_FAILED = "failed"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
NOT_SET = "not_set"
NOT_AVAILABLE = "N/A"

# -- File names --
STATE_FILE_NAME = "deployment_state.json"
SUMMARY_FILE_NAME = "deployment_summary.txt"
PATHS_ENV_FILE_NAME = "ansible_paths.env"

# -- Exit codes --
ANSIBLE_PARTIAL_FAILURE_EXIT_CODE = 2
EXIT_CODE_PLAYBOOK_MISSING = 1
EXIT_CODE_TIMEOUT = 124
EXIT_CODE_NOT_LAUNCHED = 127

STAGE_RKE2_DEPLOY = "rke2-deploy"
STAGE_RANCHER_DEPLOY = "rancher-deploy"

# Stages whose exit code 2 may be overridden by a health probe.
RECLASSIFIABLE_STAGES = frozenset({STAGE_RKE2_DEPLOY, STAGE_RANCHER_DEPLOY})

# -- Defaults --
DEFAULT_ANSIBLE_WORKSPACE = "/root/ansible-workspace"
DEFAULT_INVENTORY_FILE = "/root/ansible/rke2/airgap/inventory.yml"
DEFAULT_GROUP_VARS_FILE = "/root/ansible/rke2/airgap/group_vars/all.yml"
DEFAULT_QA_INFRA_REPO_PATH = "/root/qa-infra-automation"
DEFAULT_SSH_CONFIG_FILE = "/root/.ssh/config"
DEFAULT_SSH_PRIVATE_KEY = "/root/.ssh/id_rsa"
DEFAULT_LOG_DIR = "/root/ansible-logs"
DEFAULT_PLAYBOOK_SUBDIR = "ansible/rke2/airgap"
DEFAULT_ANSIBLE_TIMEOUT = 45
DEFAULT_ANSIBLE_VERBOSITY = "-v"
DEFAULT_PROBE_SETTLE_SECONDS = 10
DEFAULT_PROBE_ATTEMPTS = 1
DEFAULT_PROBE_INTERVAL_SECONDS = 5
DEFAULT_KUBECTL_TIMEOUT = 30

DEFAULT_KUBECONFIG_SEARCH_PATHS = (
    "/root/.kube/config",
    "/etc/rancher/rke2/rke2.yaml",
    "/root/ansible/rke2/airgap/kubeconfig",
    "/tmp/kubeconfig.yaml",
)

# -- Ansible invocation --
ANSIBLE_PLAYBOOK_BIN = "ansible-playbook"
ANSIBLE_ENV = {
    "ANSIBLE_HOST_KEY_CHECKING": "False",
    "ANSIBLE_SSH_ARGS": "-o StrictHostKeyChecking=no -o UserKnownHostsFile=/dev/null",
}
# Environment variables whose values may appear in logged commands.
LOGGABLE_ENV_VARS = frozenset({*ANSIBLE_ENV, "ANSIBLE_CONFIG", "ANSIBLE_FORCE_COLOR"})
REDACTED = "<redacted>"

REQUIRED_TOOLS = ("ansible-playbook", "kubectl")

# -- Inventory --
INVENTORY_GROUPS = ("rke2_servers", "rke2_agents")
BASTION_HOST_NAMES = ("bastion-node", "bastion")
KUBE_API_PORT = 6443
SSH_KEY_EXPECTED_MODE = 0o600

# -- Probes --
NS_CATTLE_SYSTEM = "cattle-system"

SUMMARY_RULE = "=" * 36
