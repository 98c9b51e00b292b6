"""
Configuration for Agentcord.

- **app_configuration.py**: YAML loader for global settings (command prefix,
  mention trigger, AI endpoint tuning, database location, content filter
  patterns). Falls back to defaults on missing or malformed files.

- **persona.py**: The bot's persona: name, system prompt, canned greeting and
  error strings, and the model identifier.
"""
