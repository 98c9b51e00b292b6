"""
Discord-facing presentation helpers for Agentcord.

- **embed_builder.py**: Builds ``discord.Embed`` objects for the createEmbed
  action, degrading gracefully on malformed colours and fields.
"""
