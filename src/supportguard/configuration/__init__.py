"""
Configuration management for SupportGuard.

- **env_settings.py**: Validates the secrets and chat identities taken from
  the environment (optionally seeded from ``.env``). Raises ``ConfigError``
  before the bot connects if anything required is absent or malformed.

- **app_configuration.py**: YAML tuning file loader (model name, request
  timeout, retry attempts, role check timing, history sizes, community
  wording). Falls back to defaults on missing or malformed files.

- **ai_settings.py**: Typed view over the ``ai_settings`` block.
"""
