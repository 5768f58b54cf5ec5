"""Classroom assistant: a multi-turn conversational action engine."""
