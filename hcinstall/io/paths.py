# Copyright 2025 Roger Cibrian
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

"""Directory creation that remembers what it created."""

from __future__ import annotations

from pathlib import Path


def make_dirs(path: Path) -> Path | None:
    """Create ``path`` and any missing parents.

    Returns:
        The topmost directory this call created, or None when ``path``
        already existed. Deleting the returned tree undoes the call.
    """
    path = Path(path).absolute()
    topmost = None
    probe = path
    while not probe.exists():
        topmost = probe
        if probe.parent == probe:
            break
        probe = probe.parent
    path.mkdir(parents=True, exist_ok=True)
    return topmost
