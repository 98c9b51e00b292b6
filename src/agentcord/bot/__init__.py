"""
Discord integration for Agentcord.

- **cogs/message_listener.py**: Receives message events, runs the content
  filter, and hands addressed messages to the command dispatcher.
- **cogs/events_listener.py**: Lifecycle events (on_ready).
"""
