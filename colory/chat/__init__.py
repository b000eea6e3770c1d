"""
The Colory chat assistant.
"""

from .session import APOLOGY, COLORY_PERSONA, GREETING, ChatSession, ChatSessionAdapter

__all__ = [
    "APOLOGY",
    "COLORY_PERSONA",
    "GREETING",
    "ChatSession",
    "ChatSessionAdapter",
]
