"""Pydantic models for messages, outgoing payloads, and send results.

Message is the read-only view of an inbound chat event handed to
handlers. Payload is what a ResponseBuilder accumulates and what the
transport turns into a Bot API call. SentMessage is the transport's
acknowledgement.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class MessageKind(str, Enum):
    """What an inbound message carries."""
    TEXT = "text"
    PHOTO = "photo"
    AUDIO = "audio"
    VOICE = "voice"
    VIDEO = "video"
    DOCUMENT = "document"
    STICKER = "sticker"
    CONTACT = "contact"
    LOCATION = "location"
    OTHER = "other"


class PayloadKind(str, Enum):
    """What an outgoing payload carries. Values are Bot API field names."""
    TEXT = "text"
    PHOTO = "photo"
    AUDIO = "audio"
    VOICE = "voice"
    VIDEO = "video"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"
    FORWARD = "forward"
    ACTION = "action"


class ChatAction(str, Enum):
    """Status shown to the chat by sendChatAction."""
    TYPING = "typing"
    UPLOAD_PHOTO = "upload_photo"
    RECORD_VIDEO = "record_video"
    UPLOAD_VIDEO = "upload_video"
    RECORD_VOICE = "record_voice"
    UPLOAD_VOICE = "upload_voice"
    UPLOAD_DOCUMENT = "upload_document"
    CHOOSE_STICKER = "choose_sticker"
    FIND_LOCATION = "find_location"


# Order matters: a captioned photo has both "photo" and "caption",
# an audio file sent as a document has "document" only.
_TELEGRAM_KIND_FIELDS = (
    ("text", MessageKind.TEXT),
    ("photo", MessageKind.PHOTO),
    ("audio", MessageKind.AUDIO),
    ("voice", MessageKind.VOICE),
    ("video", MessageKind.VIDEO),
    ("document", MessageKind.DOCUMENT),
    ("sticker", MessageKind.STICKER),
    ("contact", MessageKind.CONTACT),
    ("location", MessageKind.LOCATION),
)


class Message(BaseModel):
    """An inbound chat message."""

    model_config = ConfigDict(frozen=True)

    message_id: int
    chat_id: int
    sender_id: Optional[int] = None
    text: Optional[str] = None
    kind: MessageKind = MessageKind.OTHER
    date: Optional[int] = Field(default=None, description="Unix timestamp")
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_telegram(cls, data: Dict[str, Any]) -> "Message":
        """Build a Message from a Bot API ``Message`` object.

        Only plain text messages get a ``text`` body; captions on media
        are not routed as commands.
        """
        kind = MessageKind.OTHER
        for field_name, field_kind in _TELEGRAM_KIND_FIELDS:
            if field_name in data:
                kind = field_kind
                break

        sender = data.get("from") or {}
        return cls(
            message_id=data["message_id"],
            chat_id=data["chat"]["id"],
            sender_id=sender.get("id"),
            text=data.get("text"),
            kind=kind,
            date=data.get("date"),
            raw=data,
        )


class Payload(BaseModel):
    """A single outgoing payload.

    ``content`` is the text body for TEXT, a ``(latitude, longitude)``
    pair for LOCATION, a ``(from_chat_id, message_id)`` pair for
    FORWARD, a ChatAction value for ACTION, and a media reference
    (file_id, URL or local path) for everything else.
    """

    kind: PayloadKind
    # Tuple[int, int] first so forwarded ids are not coerced to floats
    content: Union[str, Tuple[int, int], Tuple[float, float]]
    options: Dict[str, Any] = Field(default_factory=dict)


class SentMessage(BaseModel):
    """Acknowledgement returned by the transport for a successful send."""

    message_id: int
    chat_id: int
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_telegram(cls, data: Dict[str, Any]) -> "SentMessage":
        return cls(
            message_id=data["message_id"],
            chat_id=data["chat"]["id"],
            raw=data,
        )
