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

"""Result types shared by sources and the installer.

Example:
    Inspecting what a source produced:
        ```python
        result = source.resolve(ctx)
        print(result.path)           # executable to run
        print(result.remove_paths)   # what Installer.remove() would delete
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class InstallResult:
    """Outcome of resolving one source.

    Attributes:
        path: Absolute path to the executable.
        removable: True when the source created what it returned and the
            installer may delete it later. Binaries found on disk are never
            removable.
        remove_paths: Paths to delete on removal: the directory the source
            created, or the individual files it wrote into a directory the
            caller owns.
        source: Human-readable description of the producing source.
    """

    path: Path
    removable: bool
    remove_paths: tuple[Path, ...] = ()
    source: str = ""
