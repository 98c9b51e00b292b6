"""
Agentcord - chat-triggered command dispatcher for Discord

Agentcord listens for messages addressed to it (by prefix or @mention), turns
them into structured calls against a fixed catalog of moderation and server
administration actions, and executes those calls against the Discord API.

Core Components:

- **Dispatch**: Direct call parsing, intent routing, argument coercion,
  reference resolution and the action executor
- **AI Bridge**: Optional language-model interpretation of free-form requests
  through an OpenAI-compatible chat completions API
- **Moderation Ledger**: Per-guild warning counters with decay, automatic
  timeout escalation, and the content-filter toggle
- **Persistence**: One JSON document per guild in a SQLite database

Usage:
    from agentcord.main import main
    main()
"""
