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

"""Configuration loading for fslxagent.

Built-in defaults, an optional YAML file, CLI overrides and FSLX_*
environment variables are merged into one immutable AgentConfig.

Public API:

- load_agent_config: Load and merge the effective configuration
- AgentConfig: The effective configuration
- ShareTarget: Server FQDN, share name and UNC profile path
- normalize_input: Strip whitespace and surrounding quotes

Example:
    Basic usage:

        from pathlib import Path
        from fslxagent.config import load_agent_config

        config = load_agent_config(Path("fslx.yaml"))
        print(config.share.profile_path)

"""

from .loader import AgentConfig, ShareTarget, load_agent_config, normalize_input

__all__ = ["AgentConfig", "ShareTarget", "load_agent_config", "normalize_input"]
