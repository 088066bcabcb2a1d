"""Ticket sessions, turn processing and action execution."""
