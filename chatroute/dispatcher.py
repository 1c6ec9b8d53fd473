"""Message dispatch: resolve a message against the command table and
invoke the matching handler.

dispatch() holds no state of its own. Messages without a text body are
not routed. Unmatched messages are expected and produce no error.
Exceptions raised by a handler are not caught here; the caller decides
whether they abort the update loop or get logged.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from .bot import Bot
    from .commands import CommandTable
    from .models import Message

logger = structlog.get_logger("chatroute.router")


async def dispatch(bot: "Bot", message: "Message", table: "CommandTable") -> bool:
    """Route one message to at most one handler.

    Args:
        bot: Handle passed through to the handler.
        message: The inbound message.
        table: Command table to resolve against.

    Returns:
        True if a handler was invoked, False otherwise.
    """
    if message.text is None:
        logger.debug(
            "message_not_routed",
            reason="no_text",
            kind=message.kind.value,
            chat_id=message.chat_id,
        )
        return False

    resolved = table.resolve(message.text)
    if resolved is None:
        logger.debug("message_unmatched", chat_id=message.chat_id)
        return False

    entry, args = resolved
    logger.info(
        "command_dispatched",
        command=entry.label,
        chat_id=message.chat_id,
        message_id=message.message_id,
        arg_count=len(args),
    )
    result = entry.handler(bot, message, entry.label, args)
    if inspect.isawaitable(result):
        await result
    return True
