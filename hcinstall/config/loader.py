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

"""
Settings loading and merging for hcinstall.

Settings come from three layers, later layers winning:

1. **Built-in defaults** (DEFAULTS below)
2. **Settings file** - the path passed to load_settings(), or the file
   named by the HCINSTALL_CONFIG environment variable
3. **Overrides** - a dict passed by the caller (the CLI uses this for
   command-line flags)

Merge Behavior
--------------
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced
  - **Scalars**: Overwritten

Example settings file:

    releases:
      base_url: https://releases.example.internal
      timeout: 30
    verify:
      gpg_binary: /usr/local/bin/gpg2
    http:
      retries: 2

Error Handling
--------------
Every problem (missing file, YAML parse error, non-mapping document, unknown
key, wrongly-typed value) raises ConfigError, chained with "from err" where
there is an underlying cause.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any

import yaml

from hcinstall.exceptions import ConfigError

CONFIG_ENV_VAR = "HCINSTALL_CONFIG"

DEFAULTS: dict[str, Any] = {
    "releases": {
        "base_url": "https://releases.hashicorp.com",
        "timeout": 60,
        "include_prereleases": False,
    },
    "verify": {
        "key_url": "https://www.hashicorp.com/.well-known/pgp-key.txt",
        "key_fingerprint": "C874011F0AB405110D02105534365D9472D7468F",
        "gpg_binary": "gpg",
    },
    "build": {
        "clone_timeout": 300,
        "build_timeout": 600,
    },
    "http": {
        "user_agent": None,
        "retries": 0,
    },
}

# (section, key) -> (Settings attribute, accepted types, nullable)
_FIELDS: dict[tuple[str, str], tuple[str, tuple[type, ...], bool]] = {
    ("releases", "base_url"): ("releases_base_url", (str,), False),
    ("releases", "timeout"): ("releases_timeout", (int, float), False),
    ("releases", "include_prereleases"): ("include_prereleases", (bool,), False),
    ("verify", "key_url"): ("key_url", (str,), True),
    ("verify", "key_fingerprint"): ("key_fingerprint", (str,), True),
    ("verify", "gpg_binary"): ("gpg_binary", (str,), False),
    ("build", "clone_timeout"): ("clone_timeout", (int, float), False),
    ("build", "build_timeout"): ("build_timeout", (int, float), False),
    ("http", "user_agent"): ("user_agent", (str,), True),
    ("http", "retries"): ("http_retries", (int,), False),
}


@dataclass(frozen=True)
class Settings:
    """Effective hcinstall settings.

    Attributes:
        releases_base_url: Root URL of the release service.
        releases_timeout: Per-request HTTP timeout in seconds.
        include_prereleases: Whether "latest" selection considers
            prereleases.
        key_url: Where to fetch the trusted signing key.
        key_fingerprint: Fingerprint the manifest signer must have.
        gpg_binary: gpg executable used for signature checks.
        clone_timeout: Limit for the git checkout of a build, in seconds.
        build_timeout: Limit for the build command, in seconds.
        user_agent: User-Agent for sessions hcinstall creates (None: the
            default "hcinstall/<version>").
        http_retries: Transport retries per request (0: none).
        source_path: Settings file that was loaded, if any.
    """

    releases_base_url: str
    releases_timeout: float
    include_prereleases: bool
    key_url: str | None
    key_fingerprint: str | None
    gpg_binary: str
    clone_timeout: float
    build_timeout: float
    user_agent: str | None
    http_retries: int
    source_path: Path | None = None


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> Any:
    """
    Load a YAML file and return the parsed Python object.

    Raises:
      ConfigError - when the file is missing, unreadable, empty or invalid YAML
    """
    if not p.exists():
        raise ConfigError(f"settings file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"error parsing YAML: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"cannot read settings file {p}: {err}") from err
    if data is None:
        raise ConfigError(f"settings file is empty: {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def _to_settings(cfg: dict[str, Any], source_path: Path | None) -> Settings:
    values: dict[str, Any] = {}
    for section, body in cfg.items():
        if not isinstance(body, dict):
            raise ConfigError(f"settings section {section!r} must be a mapping")
        for key, value in body.items():
            field_def = _FIELDS.get((section, key))
            if field_def is None:
                raise ConfigError(f"unknown setting: {section}.{key}")
            attr, types, nullable = field_def
            if value is None and nullable:
                values[attr] = None
                continue
            # bool is an int subclass; only accept it where bool is expected.
            if not isinstance(value, types) or (
                isinstance(value, bool) and bool not in types
            ):
                wanted = " or ".join(t.__name__ for t in types)
                raise ConfigError(
                    f"setting {section}.{key} must be {wanted}, got {value!r}"
                )
            values[attr] = value

    for attr in ("releases_timeout", "clone_timeout", "build_timeout"):
        if values[attr] <= 0:
            raise ConfigError(f"{attr} must be positive, got {values[attr]}")
    if values["http_retries"] < 0:
        raise ConfigError("http.retries must not be negative")

    return Settings(source_path=source_path, **values)


def load_settings(
    path: Path | str | None = None, overrides: dict[str, Any] | None = None
) -> Settings:
    """Load effective settings.

    Args:
        path: Settings file. Defaults to $HCINSTALL_CONFIG when set;
            otherwise only the built-in defaults (and overrides) apply.
        overrides: Nested dict merged last, e.g.
            {"releases": {"include_prereleases": True}}.

    Returns:
        Frozen Settings.

    Raises:
        ConfigError: On a missing or malformed file, unknown keys or
            wrongly-typed values.
    """
    if path is None and os.environ.get(CONFIG_ENV_VAR):
        path = os.environ[CONFIG_ENV_VAR]

    cfg = DEFAULTS
    source_path = None
    if path is not None:
        source_path = Path(path)
        data = _load_yaml_file(source_path)
        if not isinstance(data, dict):
            raise ConfigError(f"settings file must contain a mapping: {source_path}")
        cfg = _deep_merge_dicts(cfg, data)
    if overrides:
        cfg = _deep_merge_dicts(cfg, overrides)

    return _to_settings(cfg, source_path)
