"""
eTicket - AI-Assisted Ticket Bot for Discord

eTicket opens a private channel per user request and lets a language model
drive the conversation: each turn the model replies and may decide on a
moderation action (ban, kick, mute, ticket deletion, owner ping) that the bot
applies after re-checking permissions against Discord's own data.

Core Components:

- **Roster**: owner identity plus delegated staff, persisted in SQLite
- **Session Registry**: in-memory ticket state keyed by channel, with a lock
  per channel so turns on the same ticket never interleave
- **Decision Client**: builds the prompt, calls an OpenAI-compatible backend
  and validates the structured JSON reply
- **Action Executor**: maps a validated decision to Discord side effects
- **Ticket Controller**: opens tickets, runs conversation turns, closes tickets

Usage:
    from eticket.main import main
    main()
"""

__version__ = "0.1.0"
