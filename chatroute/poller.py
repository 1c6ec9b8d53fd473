"""Long-poll update loop.

Pulls updates from the Bot API, tracks the update offset, turns each
update into a Message and hands it to Bot.handle_update(), one at a
time and in receipt order. A failing handler is logged and the loop
moves on; a failing getUpdates call is logged and retried after a
fixed delay.
"""

import asyncio
from typing import Any, Dict, Optional

import structlog

from .bot import Bot
from .exceptions import TransportError
from .models import Message
from .transport import TelegramTransport

logger = structlog.get_logger("chatroute.poller")


class UpdatePoller:
    """Feeds Bot API updates to a Bot.

    Args:
        bot: Bot whose handle_update() receives each message.
        transport: Transport used for getUpdates.
        poll_timeout: Long-poll duration per request in seconds.
        error_delay: Seconds to wait after a failed getUpdates call.
        handle_edited: Also route ``edited_message`` updates.
    """

    def __init__(
        self,
        bot: Bot,
        transport: TelegramTransport,
        poll_timeout: int = 20,
        error_delay: float = 5.0,
        handle_edited: bool = False,
    ):
        self.bot = bot
        self.transport = transport
        self.poll_timeout = poll_timeout
        self.error_delay = error_delay
        self.handle_edited = handle_edited
        self.offset: Optional[int] = None
        self.running = False

    def _extract_message(self, update: Dict[str, Any]) -> Optional[Message]:
        data = update.get("message")
        if data is None and self.handle_edited:
            data = update.get("edited_message")
        if data is None:
            return None
        try:
            return Message.from_telegram(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "update_parse_failed",
                update_id=update.get("update_id"),
                error=str(e),
            )
            return None

    async def process_update(self, update: Dict[str, Any]) -> None:
        """Advance the offset past update and dispatch its message."""
        update_id = update.get("update_id")
        if isinstance(update_id, int):
            self.offset = max(self.offset or 0, update_id + 1)

        message = self._extract_message(update)
        if message is None:
            logger.debug("update_skipped", update_id=update_id)
            return

        try:
            await self.bot.handle_update(message)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "handler_failed",
                update_id=update_id,
                chat_id=message.chat_id,
            )

    async def poll_once(self) -> int:
        """Fetch and process one batch of updates.

        Returns:
            Number of updates received.
        """
        updates = await self.transport.get_updates(
            offset=self.offset, timeout=self.poll_timeout
        )
        for update in updates:
            await self.process_update(update)
        return len(updates)

    async def run(self) -> None:
        """Poll until stop() is called or the task is cancelled."""
        self.running = True
        logger.info("polling_started", timeout=self.poll_timeout)
        try:
            while self.running:
                try:
                    await self.poll_once()
                except TransportError as e:
                    logger.error(
                        "polling_error",
                        error=str(e),
                        retry_delay=self.error_delay,
                    )
                    await asyncio.sleep(self.error_delay)
        finally:
            self.running = False
            logger.info("polling_stopped", offset=self.offset)

    def stop(self) -> None:
        self.running = False
