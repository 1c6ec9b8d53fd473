"""Bot facade: the object handler code works with.

Owns the command table, exposes registration (command, slash_command),
starts response builders (answer, send), and accepts inbound messages
from the update poller (handle_update).

Usage:
    async def echo(bot, message, command, args):
        await bot.answer(message).text(args[0]).end()

    bot = Bot(transport, username="my_bot")
    bot.slash_command("echo (.+)", echo)
    await bot.handle_update(message)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from .commands import CommandTable, Handler
from .dispatcher import dispatch
from .patterns import slash_command_spec
from .response import ResponseBuilder

if TYPE_CHECKING:
    from .models import Message
    from .transport import Transport

logger = structlog.get_logger("chatroute.router")


class Bot:
    """Chat bot with an ordered command table.

    Register every command before the update loop starts; the table is
    treated as read-only afterwards.

    Args:
        transport: Collaborator used by response builders to send.
        username: The bot's username, accepted as ``/cmd@username`` by
            slash commands.
    """

    def __init__(self, transport: "Transport", username: str = ""):
        self.transport = transport
        self.username = username
        self.commands = CommandTable()

    def command(self, spec: str, handler: Handler) -> "Bot":
        """Register a handler for a raw command pattern.

        The pattern is matched from the start of the message text.

        Raises:
            PatternError: If spec is not a valid pattern.
        """
        self.commands.register(spec, handler)
        return self

    def slash_command(self, spec: str, handler: Handler) -> "Bot":
        """Register a handler for a ``/command`` spec.

        "echo (.+)" matches "/echo hi" and "/echo@<username> hi" over the
        whole message. The handler receives spec as its label.

        Raises:
            PatternError: If the rewritten spec is not a valid pattern.
        """
        self.commands.register(
            slash_command_spec(spec, self.username), handler, label=spec
        )
        return self

    def send(self, chat_id: int) -> ResponseBuilder:
        """Start a response to an arbitrary chat."""
        return ResponseBuilder(chat_id, self.transport)

    def answer(self, message: "Message") -> ResponseBuilder:
        """Start a response to the chat message came from."""
        return self.send(message.chat_id)

    async def handle_update(self, message: "Message") -> bool:
        """Dispatch one inbound message.

        Handler exceptions propagate to the caller.

        Returns:
            True if a handler ran.
        """
        return await dispatch(self, message, self.commands)
