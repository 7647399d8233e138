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

"""Error types and exit status mapping."""

from __future__ import annotations

import sh


class E2EError(RuntimeError):
    """Base class for environment errors raised by kind_e2e."""


class UnsupportedArchitectureError(E2EError):
    """The host CPU architecture has no known build platform."""

    def __init__(self, arch: str, supported: list[str]) -> None:
        self.arch = arch
        super().__init__(
            f"Unsupported architecture: {arch} (supported: {', '.join(supported)})"
        )


class WaitTimeoutError(E2EError):
    """A readiness condition did not hold within its bound."""

    def __init__(self, description: str, timeout: float) -> None:
        self.description = description
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s waiting for {description}")


class PatchIntegrityError(E2EError):
    """A script transform found nothing to change."""


class PlanError(E2EError):
    """The step plan is malformed."""


def exit_status_for(exc: BaseException) -> int:
    """Map an exception to the process exit status it should produce.

    Args:
        exc: The exception that ended the run.

    Returns:
        The failing command's exit code where one exists, else a generic status.
    """
    if isinstance(exc, sh.ErrorReturnCode):
        code = getattr(exc, "exit_code", 1) or 1
        # Killed by a signal: report it the way a shell does.
        return 128 - code if code < 0 else code
    if isinstance(exc, SystemExit):
        if isinstance(exc.code, int):
            return exc.code
        return 0 if exc.code is None else 1
    if isinstance(exc, KeyboardInterrupt):
        return 130
    return 1
