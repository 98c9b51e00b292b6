"""
Moderation state for Agentcord.

- **moderation_ledger.py**: Warning state machine (count, 24h decay, automatic
  timeout on the third warning) and per-guild content filter flag.
- **content_filter.py**: Pattern matching of message text for guilds that
  enabled the filter.
"""
