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

"""Settings loading for hcinstall.

Built-in defaults are deep-merged with an optional YAML settings file and
then with caller overrides (dicts merged recursively, lists and scalars
replaced).

Public API:

- load_settings: Load the effective Settings
- Settings: Frozen settings dataclass

Example:
    Basic usage:

        from hcinstall.config import load_settings

        settings = load_settings("hcinstall.yaml")
        print(settings.releases_base_url)
"""

from .loader import CONFIG_ENV_VAR, DEFAULTS, Settings, load_settings

__all__ = ["CONFIG_ENV_VAR", "DEFAULTS", "Settings", "load_settings"]
