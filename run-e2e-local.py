#!/usr/bin/env python3
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

"""
run-e2e-local.py - Local kind environment for automotive-dev-operator E2E testing.

Default behavior provisions everything (registry + host patches + kind cluster
+ registry DNS shim + Tekton + ingress-nginx + operator + runtime patches +
build API access), runs two builds through the caib client, and tears the
environment down. A failed run keeps the cluster and prints cleanup commands.

The host patches write /etc/hosts and /etc/containers/registries.conf.d, so
run as a user allowed to modify them.

Environment Variables:
    All configuration can be overridden via E2E_* environment variables:
    - E2E_CLUSTER_NAME (default: automotive-dev-e2e)
    - E2E_REGISTRY_PORT (default: 5001)
    - E2E_REGISTRY_HOST (default: image-registry.openshift-image-registry.svc)
    - E2E_OPERATOR_NAMESPACE (default: automotive-dev-operator-system)
    - E2E_STRICT_SCRIPT_PATCH (default: true)
    - And more (see config classes for full list)

Examples:
    # Full run from the operator checkout
    ./run-e2e-local.py run --operator-dir ../automotive-dev-operator

    # Provision only, then run the E2E suite
    ./run-e2e-local.py run --skip-builds --run-e2e-tests

    # Clean up after a failed run
    ./run-e2e-local.py teardown

For detailed usage information, run: ./run-e2e-local.py --help
"""

from __future__ import annotations

from kind_e2e.cli import app

if __name__ == "__main__":
    app()
