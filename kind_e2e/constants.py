# /*
# Copyright 2026 The Automotive Dev Operator Authors.
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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent


def load_dependencies() -> dict:
    """Load pinned third-party inputs from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = PACKAGE_DIR / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Host architectures --
ARCH_PLATFORMS = {
    "x86_64": ("linux/amd64", "amd64"),
    "arm64": ("linux/arm64", "arm64"),
    "aarch64": ("linux/arm64", "arm64"),
}

# -- Labels and annotations --
NODE_REGISTRY_ANNOTATION = "kind.x-k8s.io/registry"
UNMANAGED_ANNOTATION = "automotive.sdv.cloud.redhat.com/unmanaged"
POD_SECURITY_MODES = ("enforce", "audit", "warn")
POD_SECURITY_LABEL_PREFIX = "pod-security.kubernetes.io"
POD_SECURITY_LEVEL = "privileged"

# -- Namespaces --
NS_KUBE_PUBLIC = "kube-public"

# -- Local registry hosting (KEP-1755) --
LOCAL_REGISTRY_HOSTING_CONFIGMAP = "local-registry-hosting"
LOCAL_REGISTRY_HOSTING_KEY = "localRegistryHosting.v1"
LOCAL_REGISTRY_HELP_URL = "https://kind.sigs.k8s.io/docs/user/local-registry/"
REGISTRY_ENDPOINT_PORT_NAME = "registry"

# -- Operator resources --
OPERATOR_CONFIG_KIND = "operatorconfig"
OPERATOR_CONFIG_NAME = "config"
PUSH_TASK_KIND = "task"
PUSH_TASK_NAME = "push-artifact-registry"
PUSH_COMMAND = "oras push "
PUSH_COMMAND_PLAIN_HTTP = "oras push --plain-http "

# -- Make targets --
MAKE_DOCKER_BUILD = "docker-build"
MAKE_INSTALL = "install"
MAKE_BUILD_CLIENT = "build-caib"
MAKE_DEPLOY = "deploy"
MAKE_TEST_E2E = "test-e2e"
CONTAINER_TOOL = "docker"

# -- Relative paths --
REL_SAMPLE_OPERATOR_CONFIG = "config/samples/automotive_v1_operatorconfig.yaml"
REL_CLIENT_BIN = "bin/caib"
REL_TEST_MANIFEST = "test/config/test-manifest.aib.yml"
REL_DISK_OUTPUT = "output/automotive-os-latest.qcow2"

# -- Build client --
ARTIFACT_REPOSITORY = "myorg/automotive-os"
ARTIFACT_TAG = "latest"
ARTIFACT_DISK_TAG = "latest-disk"
DISK_TARGET = "qemu"
DISK_FORMAT = "qcow2"

# -- Port-forward --
PORT_FORWARD_STOP_TIMEOUT_SECONDS = 10

# -- Cluster defaults --
DEFAULT_CLUSTER_NAME = "automotive-dev-e2e"
DEFAULT_NETWORK = "kind"
DEFAULT_NODE_LABEL = "aib=true"
DEFAULT_CREATE_WAIT = "5m"
DEFAULT_NODE_READY_TIMEOUT_SECONDS = 60
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_CLUSTER_CREATE_MAX_RETRIES = 1
CLUSTER_CREATE_RETRY_WAIT_SECONDS = 10

# -- Registry defaults --
DEFAULT_REGISTRY_NAME = "kind-registry"
DEFAULT_REGISTRY_IMAGE = "registry:2"
DEFAULT_REGISTRY_PORT = 5001
DEFAULT_REGISTRY_INTERNAL_PORT = 5000
DEFAULT_REGISTRY_BIND_ADDRESS = "127.0.0.1"
DEFAULT_REGISTRY_HOST = "image-registry.openshift-image-registry.svc"
DEFAULT_HOSTS_FILE = "/etc/hosts"
DEFAULT_INSECURE_REGISTRY_CONF = "/etc/containers/registries.conf.d/kind-e2e-registry.conf"
DEFAULT_REGISTRY_IP_TIMEOUT_SECONDS = 60
DEFAULT_REGISTRY_IP_POLL_INTERVAL_SECONDS = 1.0

# -- Component defaults --
DEFAULT_OPERATOR_NAMESPACE = "automotive-dev-operator-system"
DEFAULT_OPERATOR_IMAGE = "automotive-dev-operator:test"
DEFAULT_CONTROLLER_DEPLOYMENT = "ado-controller-manager"
DEFAULT_API_DEPLOYMENT = "ado-build-api"
DEFAULT_API_PORT = 8080
DEFAULT_SERVICE_ACCOUNT = "caib"
DEFAULT_TOKEN_DURATION = "8760h"
DEFAULT_PORT_FORWARD_SETTLE_SECONDS = 5.0
DEFAULT_REGISTRY_USERNAME = "kind"
DEFAULT_REGISTRY_PASSWORD = "kind"
DEFAULT_TEKTON_TIMEOUT_SECONDS = 300
DEFAULT_INGRESS_TIMEOUT_SECONDS = 180
DEFAULT_CONTROLLER_TIMEOUT_SECONDS = 600
DEFAULT_API_TIMEOUT_SECONDS = 480
