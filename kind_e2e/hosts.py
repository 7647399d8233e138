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

"""Host name resolution and insecure-registry configuration patches.

Both files are host-global. The build client runs on the host and pulls
artifacts through the same registry hostname the in-cluster builds push to,
so the hostname must resolve to loopback and be allowed over plain HTTP.
"""

from __future__ import annotations

from pathlib import Path

from kind_e2e import console

LOOPBACK = "127.0.0.1"

INSECURE_REGISTRY_TEMPLATE = """\
[[registry]]
location = "{location}"
insecure = true
"""


def ensure_host_resolution(hosts_file: Path, hostname: str) -> bool:
    """Append a loopback entry for *hostname* unless one is already present.

    Args:
        hosts_file: Name resolution file (normally ``/etc/hosts``).
        hostname: Hostname to map to loopback.

    Returns:
        True if an entry was appended.
    """
    content = hosts_file.read_text() if hosts_file.exists() else ""
    if hostname in content:
        return False
    prefix = "" if not content or content.endswith("\n") else "\n"
    with open(hosts_file, "a") as f:
        f.write(f"{prefix}{LOOPBACK} {hostname}\n")
    console.print(f"[green]\u2705 Added {hostname} to {hosts_file}[/green]")
    return True


def remove_host_resolution(hosts_file: Path, hostname: str) -> None:
    """Drop every line of *hosts_file* that mentions *hostname*.

    The file is rewritten in place; it may be a bind mount that cannot be
    replaced by rename.
    """
    if not hosts_file.exists():
        return
    lines = hosts_file.read_text().splitlines(keepends=True)
    kept = [line for line in lines if hostname not in line]
    if len(kept) != len(lines):
        hosts_file.write_text("".join(kept))


def ensure_insecure_registry_config(conf_file: Path, location: str) -> None:
    """(Re)write the containers-registries.conf drop-in marking *location* insecure."""
    conf_file.parent.mkdir(parents=True, exist_ok=True)
    conf_file.write_text(INSECURE_REGISTRY_TEMPLATE.format(location=location))
    console.print(f"[green]\u2705 Marked {location} as insecure in {conf_file}[/green]")


def remove_insecure_registry_config(conf_file: Path) -> None:
    """Remove the insecure-registry drop-in if present."""
    conf_file.unlink(missing_ok=True)
