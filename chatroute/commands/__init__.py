"""Command table for chatroute.

Provides the Handler protocol, CommandEntry, and the ordered
CommandTable with first-match-wins resolution.
"""

from .base import Captures, CommandEntry, CommandTable, Handler

__all__ = [
    "Captures",
    "CommandEntry",
    "CommandTable",
    "Handler",
]
