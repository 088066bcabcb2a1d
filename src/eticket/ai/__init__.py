"""
Language-model side of a ticket turn.

- **llm_payload_builder.py**: turns a ConversationContext into chat messages.
- **decision_parsing.py**: validates the model's untrusted JSON into a Decision.
- **llm_engine.py**: DecisionClient, one bounded AsyncOpenAI round-trip per turn.
"""
