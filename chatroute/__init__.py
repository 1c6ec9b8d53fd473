"""Command routing and response building for Telegram bots.

Register handlers against command patterns on a Bot, feed it messages
with handle_update(), and reply from handlers through the fluent
ResponseBuilder returned by Bot.answer().
"""

from .bot import Bot
from .commands import CommandEntry, CommandTable
from .exceptions import (
    AlreadySentError,
    ChatrouteError,
    EmptyResponseError,
    PatternError,
    PayloadConflictError,
    ResponseError,
    TransportError,
)
from .models import (
    ChatAction,
    Message,
    MessageKind,
    Payload,
    PayloadKind,
    SentMessage,
)
from .response import ResponseBuilder, ResponseState

__version__ = "0.3.0"

__all__ = [
    "AlreadySentError",
    "Bot",
    "ChatAction",
    "ChatrouteError",
    "CommandEntry",
    "CommandTable",
    "EmptyResponseError",
    "Message",
    "MessageKind",
    "PatternError",
    "Payload",
    "PayloadConflictError",
    "PayloadKind",
    "ResponseBuilder",
    "ResponseError",
    "ResponseState",
    "SentMessage",
    "TransportError",
]
