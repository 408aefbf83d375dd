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

"""Checksum manifest (SHA256SUMS) parsing.

Each release version publishes one manifest listing the SHA-256 of every
archive, one per line in ``sha256sum`` format:

    b8cf184dee15dfa89713fe56085313ab23db22e17284a9a27c0999c67ce3021e  terraform_1.3.7_linux_amd64.zip

The platform and architecture are encoded in the file name only.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from hcinstall.exceptions import NotFoundError, StructuralError

_LINE_RE = re.compile(r"^(?P<digest>[0-9a-fA-F]{64})\s+\*?(?P<filename>\S+)\s*$")


@dataclass(frozen=True)
class ManifestEntry:
    """One manifest row.

    Attributes:
        filename: Archive file name.
        sha256: Lowercase hex digest.
    """

    filename: str
    sha256: str


def parse_manifest(content: bytes | str) -> list[ManifestEntry]:
    """Parse manifest text into entries, in file order.

    Blank lines are ignored.

    Raises:
        StructuralError: If the content is not UTF-8 text or a non-blank
            line is not "<sha256>  <filename>".
    """
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as err:
            raise StructuralError(
                f"checksum manifest is not UTF-8 text: {err}"
            ) from err
    else:
        text = content
    entries: list[ManifestEntry] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        m = _LINE_RE.match(line.strip())
        if not m:
            raise StructuralError(f"malformed checksum manifest line {lineno}: {line!r}")
        entries.append(
            ManifestEntry(filename=m.group("filename"), sha256=m.group("digest").lower())
        )
    return entries


def find_entry(entries: list[ManifestEntry], filename: str) -> ManifestEntry:
    """Return the single entry for ``filename``.

    Raises:
        NotFoundError: If the manifest has no entry for the file (the
            version was not built for this platform).
        StructuralError: If the file is listed more than once.
    """
    matches = [e for e in entries if e.filename == filename]
    if not matches:
        raise NotFoundError(f"checksum manifest has no entry for {filename}")
    if len(matches) > 1:
        raise StructuralError(
            f"checksum manifest lists {filename} {len(matches)} times"
        )
    return matches[0]
