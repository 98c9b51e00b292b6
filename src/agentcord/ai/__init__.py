"""
Language-model bridge for Agentcord.

- **model_bridge.py**: Sends the persona prompt, the user's query and (for
  administrative requests) the action catalog as tool declarations to an
  OpenAI-compatible API, and normalises the reply into text plus at most one
  structured call. Never raises: failures become the persona's apology.
"""
