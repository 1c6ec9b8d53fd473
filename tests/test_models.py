"""Tests for message parsing and error formatting."""

import pytest
from pydantic import ValidationError

from chatroute.exceptions import (
    AlreadySentError,
    ChatrouteError,
    ErrorCategory,
    PatternError,
    ResponseError,
    TransportError,
)
from chatroute.models import Message, MessageKind, SentMessage


def _telegram_message(**fields):
    data = {
        "message_id": 5,
        "date": 1700000000,
        "chat": {"id": -100123, "type": "group"},
        "from": {"id": 77, "is_bot": False, "first_name": "Ana"},
    }
    data.update(fields)
    return data


class TestMessageFromTelegram:
    """Tests for Message.from_telegram."""

    def test_text_message(self):
        message = Message.from_telegram(_telegram_message(text="/start"))
        assert message.message_id == 5
        assert message.chat_id == -100123
        assert message.sender_id == 77
        assert message.text == "/start"
        assert message.kind is MessageKind.TEXT
        assert message.date == 1700000000

    def test_photo_with_caption_has_no_text(self):
        data = _telegram_message(
            photo=[{"file_id": "abc", "width": 1, "height": 1}], caption="/echo hi"
        )
        message = Message.from_telegram(data)
        assert message.kind is MessageKind.PHOTO
        assert message.text is None

    @pytest.mark.parametrize(
        "field,kind",
        [
            ("audio", MessageKind.AUDIO),
            ("voice", MessageKind.VOICE),
            ("video", MessageKind.VIDEO),
            ("document", MessageKind.DOCUMENT),
            ("sticker", MessageKind.STICKER),
            ("contact", MessageKind.CONTACT),
            ("location", MessageKind.LOCATION),
        ],
    )
    def test_media_kinds(self, field, kind):
        message = Message.from_telegram(_telegram_message(**{field: {}}))
        assert message.kind is kind

    def test_service_message_is_other(self):
        message = Message.from_telegram(_telegram_message(new_chat_title="x"))
        assert message.kind is MessageKind.OTHER

    def test_channel_post_without_sender(self):
        data = _telegram_message(text="hi")
        del data["from"]
        assert Message.from_telegram(data).sender_id is None

    def test_message_is_read_only(self):
        message = Message.from_telegram(_telegram_message(text="hi"))
        with pytest.raises(ValidationError):
            message.text = "changed"

    def test_sent_message(self):
        sent = SentMessage.from_telegram({"message_id": 9, "chat": {"id": 3}})
        assert (sent.message_id, sent.chat_id) == (9, 3)


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(PatternError, ChatrouteError)
        assert issubclass(AlreadySentError, ResponseError)
        assert issubclass(TransportError, ChatrouteError)

    def test_str_includes_module_and_context(self):
        err = ChatrouteError("boom", module="router", chat_id=1)
        assert str(err) == "boom [module=router] (chat_id=1)"

    def test_default_categories(self):
        assert PatternError("x").category == ErrorCategory.USAGE
        assert AlreadySentError("x", chat_id=1).chat_id == 1
        assert TransportError("x").is_retryable

    def test_repr(self):
        assert repr(PatternError("bad", spec="(")) == (
            "PatternError('bad', category='usage', module='patterns')"
        )
