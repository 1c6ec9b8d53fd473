"""Fluent, single-use response builder.

A ResponseBuilder is bound to one chat and moves through three states:

    EMPTY --text()/photo()/...--> PAYLOAD_SET --end()--> SENT

Exactly one payload may be set. A second payload setter is rejected
with PayloadConflictError rather than silently replacing the first.
Modifiers (caption, reply_to, keyboard, ...) are only accepted while a
payload is set and only for payload kinds the Bot API supports them on.
Once end() has been called every further call raises AlreadySentError.

Usage (inside a handler):
    await bot.answer(message).text("Hello!").reply_to(message.message_id).end()
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, FrozenSet, Iterable, Optional, Sequence, Union

import structlog

from .exceptions import (
    AlreadySentError,
    EmptyResponseError,
    PayloadConflictError,
    ResponseError,
)
from .models import ChatAction, Payload, PayloadKind, SentMessage

if TYPE_CHECKING:
    from .transport import Transport

logger = structlog.get_logger("chatroute.router")

# forwards and chat actions take no reply options
_REPLYABLE: FrozenSet[PayloadKind] = frozenset(PayloadKind) - {
    PayloadKind.FORWARD, PayloadKind.ACTION,
}
_CAPTIONED: FrozenSet[PayloadKind] = frozenset({
    PayloadKind.PHOTO, PayloadKind.AUDIO, PayloadKind.VOICE,
    PayloadKind.VIDEO, PayloadKind.DOCUMENT,
})
_TIMED: FrozenSet[PayloadKind] = frozenset({
    PayloadKind.AUDIO, PayloadKind.VOICE, PayloadKind.VIDEO,
})


class ResponseState(str, Enum):
    """Lifecycle of a ResponseBuilder."""
    EMPTY = "empty"
    PAYLOAD_SET = "payload_set"
    SENT = "sent"


class ResponseBuilder:
    """Accumulates one outgoing payload for a chat and sends it.

    Create through Bot.answer() or Bot.send() rather than directly.

    Args:
        chat_id: Target chat.
        transport: Collaborator whose send() delivers the payload.
    """

    def __init__(self, chat_id: int, transport: "Transport"):
        self.chat_id = chat_id
        self._transport = transport
        self._state = ResponseState.EMPTY
        self._payload: Optional[Payload] = None

    def __repr__(self) -> str:
        kind = self._payload.kind.value if self._payload else None
        return (
            f"ResponseBuilder(chat_id={self.chat_id!r}, "
            f"state={self._state.value!r}, kind={kind!r})"
        )

    @property
    def state(self) -> ResponseState:
        return self._state

    @property
    def payload(self) -> Optional[Payload]:
        return self._payload

    # --- state checks ---

    def _ensure_not_sent(self, operation: str) -> None:
        if self._state is ResponseState.SENT:
            raise AlreadySentError(
                f"Cannot call {operation}() on a response that was already sent",
                chat_id=self.chat_id,
            )

    def _set_payload(self, kind: PayloadKind, content: Any) -> "ResponseBuilder":
        self._ensure_not_sent(kind.value)
        if self._state is ResponseState.PAYLOAD_SET:
            raise PayloadConflictError(
                f"Cannot set a {kind.value} payload, "
                f"a {self._payload.kind.value} payload is already set",
                chat_id=self.chat_id,
            )
        self._payload = Payload(kind=kind, content=content)
        self._state = ResponseState.PAYLOAD_SET
        return self

    def _set_option(
        self, name: str, value: Any, allowed: FrozenSet[PayloadKind]
    ) -> "ResponseBuilder":
        self._ensure_not_sent(name)
        if self._state is ResponseState.EMPTY:
            raise EmptyResponseError(
                f"Cannot set {name} before a payload", chat_id=self.chat_id
            )
        if self._payload.kind not in allowed:
            raise ResponseError(
                f"{name} is not supported for {self._payload.kind.value} payloads",
                chat_id=self.chat_id,
            )
        self._payload.options[name] = value
        return self

    # --- payload setters ---

    def text(self, content: str) -> "ResponseBuilder":
        """Send a text message."""
        return self._set_payload(PayloadKind.TEXT, content)

    def photo(self, ref: str) -> "ResponseBuilder":
        """Send a photo (file_id, URL or local path)."""
        return self._set_payload(PayloadKind.PHOTO, ref)

    def audio(self, ref: str) -> "ResponseBuilder":
        return self._set_payload(PayloadKind.AUDIO, ref)

    def voice(self, ref: str) -> "ResponseBuilder":
        return self._set_payload(PayloadKind.VOICE, ref)

    def video(self, ref: str) -> "ResponseBuilder":
        return self._set_payload(PayloadKind.VIDEO, ref)

    def document(self, ref: str) -> "ResponseBuilder":
        return self._set_payload(PayloadKind.DOCUMENT, ref)

    def sticker(self, ref: str) -> "ResponseBuilder":
        return self._set_payload(PayloadKind.STICKER, ref)

    def location(self, latitude: float, longitude: float) -> "ResponseBuilder":
        """Send a map location."""
        return self._set_payload(
            PayloadKind.LOCATION, (float(latitude), float(longitude))
        )

    def forward(self, from_chat_id: int, message_id: int) -> "ResponseBuilder":
        """Forward message_id from from_chat_id into this chat."""
        return self._set_payload(
            PayloadKind.FORWARD, (int(from_chat_id), int(message_id))
        )

    def action(self, action: Union[ChatAction, str]) -> "ResponseBuilder":
        """Show a chat action such as "typing" until the next message.

        Raises:
            ResponseError: If action is not a known chat action.
        """
        try:
            action = ChatAction(action)
        except ValueError:
            raise ResponseError(
                f"Unknown chat action {action!r}", chat_id=self.chat_id
            ) from None
        return self._set_payload(PayloadKind.ACTION, action.value)

    # --- modifiers ---

    def caption(self, caption: str) -> "ResponseBuilder":
        return self._set_option("caption", caption, _CAPTIONED)

    def reply_to(self, message_id: int) -> "ResponseBuilder":
        """Send the payload as a reply to message_id in the same chat."""
        return self._set_option("reply_to_message_id", message_id, _REPLYABLE)

    def parse_mode(self, mode: str) -> "ResponseBuilder":
        """Set "MarkdownV2", "HTML" or "Markdown" formatting."""
        return self._set_option(
            "parse_mode", mode, _CAPTIONED | {PayloadKind.TEXT}
        )

    def disable_preview(self, disable: bool = True) -> "ResponseBuilder":
        """Disable the link preview of a text message."""
        return self._set_option(
            "disable_web_page_preview", disable, frozenset({PayloadKind.TEXT})
        )

    def duration(self, seconds: int) -> "ResponseBuilder":
        return self._set_option("duration", seconds, _TIMED)

    def performer(self, performer: str) -> "ResponseBuilder":
        return self._set_option("performer", performer, frozenset({PayloadKind.AUDIO}))

    def title(self, title: str) -> "ResponseBuilder":
        return self._set_option("title", title, frozenset({PayloadKind.AUDIO}))

    # Only one reply markup is sent; the last one set wins.

    def keyboard(
        self,
        rows: Iterable[Sequence[str]],
        *,
        resize: bool = False,
        one_time: bool = False,
        selective: bool = False,
    ) -> "ResponseBuilder":
        """Attach a custom reply keyboard.

        Args:
            rows: Button labels, one sequence per keyboard row.
        """
        markup = {
            "keyboard": [[{"text": label} for label in row] for row in rows],
            "resize_keyboard": resize,
            "one_time_keyboard": one_time,
            "selective": selective,
        }
        return self._set_option("reply_markup", markup, _REPLYABLE)

    def hide_keyboard(self, selective: bool = False) -> "ResponseBuilder":
        markup = {"remove_keyboard": True, "selective": selective}
        return self._set_option("reply_markup", markup, _REPLYABLE)

    def force_reply(self, selective: bool = False) -> "ResponseBuilder":
        """Ask the client to show a reply interface to the user."""
        markup = {"force_reply": True, "selective": selective}
        return self._set_option("reply_markup", markup, _REPLYABLE)

    # --- terminal ---

    async def end(self) -> Union[SentMessage, bool]:
        """Send the payload and invalidate the builder.

        The builder is marked SENT before the transport is awaited, so a
        failed send is never repeated by calling end() again.

        Returns:
            The transport's acknowledgement: a SentMessage, or True for
            a chat action.

        Raises:
            EmptyResponseError: No payload was set; nothing is sent.
            AlreadySentError: end() was already called.
            TransportError: Propagated unchanged from the transport.
        """
        self._ensure_not_sent("end")
        if self._state is ResponseState.EMPTY:
            raise EmptyResponseError(
                "Cannot send a response without a payload", chat_id=self.chat_id
            )
        self._state = ResponseState.SENT
        payload = self._payload
        logger.debug(
            "response_sending",
            chat_id=self.chat_id,
            kind=payload.kind.value,
            options=sorted(payload.options),
        )
        return await self._transport.send(self.chat_id, payload)
