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

"""Host CPU architecture to build platform resolution."""

from __future__ import annotations

import platform
from dataclasses import dataclass

from kind_e2e.constants import ARCH_PLATFORMS
from kind_e2e.errors import UnsupportedArchitectureError


@dataclass(frozen=True)
class BuildPlatform:
    """Target of the operator image build and the client's artifact builds.

    Attributes:
        platform: Container build platform (e.g. ``linux/amd64``).
        arch: Artifact architecture tag passed to the build client.
    """

    platform: str
    arch: str


def resolve_build_platform(host_arch: str | None = None) -> BuildPlatform:
    """Map a host CPU architecture to its build platform.

    Args:
        host_arch: Architecture string as reported by ``uname -m``, or None
            to read it from the running host.

    Returns:
        The matching build platform.

    Raises:
        UnsupportedArchitectureError: If the architecture is not recognized.
    """
    arch = host_arch if host_arch is not None else platform.machine()
    try:
        build_platform, artifact_arch = ARCH_PLATFORMS[arch]
    except KeyError:
        raise UnsupportedArchitectureError(arch, list(ARCH_PLATFORMS)) from None
    return BuildPlatform(platform=build_platform, arch=artifact_arch)
