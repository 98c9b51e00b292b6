"""
Database package for Agentcord.

Holds the single long-lived SQLite connection and the store that persists
moderation ledger documents keyed by guild.
"""
