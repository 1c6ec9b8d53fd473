"""Tests for message dispatch and the Bot facade."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chatroute.bot import Bot
from chatroute.dispatcher import dispatch
from chatroute.exceptions import PatternError
from chatroute.models import Message, MessageKind
from chatroute.response import ResponseBuilder, ResponseState


def _text_message(text, chat_id=42, message_id=7):
    return Message(
        message_id=message_id,
        chat_id=chat_id,
        sender_id=1001,
        text=text,
        kind=MessageKind.TEXT,
    )


def _make_bot(username=""):
    return Bot(transport=AsyncMock(), username=username)


class TestDispatch:
    """Tests for dispatch()."""

    @pytest.mark.asyncio
    async def test_handler_receives_context(self):
        bot = _make_bot()
        handler = MagicMock()
        bot.command("echo (.+)", handler)
        message = _text_message("echo hello world")

        assert await dispatch(bot, message, bot.commands) is True
        handler.assert_called_once_with(bot, message, "echo (.+)", ["hello world"])

    @pytest.mark.asyncio
    async def test_async_handler_is_awaited(self):
        bot = _make_bot()
        handler = AsyncMock()
        bot.command(r"hi (\w+)", handler)
        message = _text_message("hi bob")

        await bot.handle_update(message)
        handler.assert_awaited_once_with(bot, message, r"hi (\w+)", ["bob"])

    @pytest.mark.asyncio
    async def test_order_sensitivity(self):
        bot = _make_bot()
        first = AsyncMock()
        second = AsyncMock()
        bot.command("echo (.+)", first).command("e.*", second)

        await bot.handle_update(_text_message("echo hi"))
        first.assert_awaited_once()
        second.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_one_handler_runs(self):
        bot = _make_bot()
        first = AsyncMock()
        second = AsyncMock()
        bot.command("ping", first).command("ping", second)

        await bot.handle_update(_text_message("ping"))
        first.assert_awaited_once()
        second.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_match_no_crash(self):
        bot = _make_bot()
        handler = AsyncMock()
        bot.command("echo (.+)", handler)

        assert await bot.handle_update(_text_message("hello")) is False
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_message_without_text_is_not_routed(self):
        bot = _make_bot()
        handler = AsyncMock()
        bot.command(".*", handler)
        photo = Message(message_id=1, chat_id=42, kind=MessageKind.PHOTO)

        assert await bot.handle_update(photo) is False
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_handler_exception_propagates(self):
        bot = _make_bot()
        bot.command("boom", AsyncMock(side_effect=ValueError("handler failed")))

        with pytest.raises(ValueError, match="handler failed"):
            await bot.handle_update(_text_message("boom"))


class TestBot:
    """Tests for Bot registration and response helpers."""

    def test_command_returns_bot_for_chaining(self):
        bot = _make_bot()
        assert bot.command("a", MagicMock()) is bot
        assert bot.commands.labels == ["a"]

    def test_command_surfaces_pattern_error(self):
        bot = _make_bot()
        with pytest.raises(PatternError):
            bot.command("(", MagicMock())

    @pytest.mark.asyncio
    async def test_slash_command_uses_username(self):
        bot = _make_bot(username="rockbot")
        handler = AsyncMock()
        bot.slash_command("echo (.+)", handler)
        message = _text_message("/echo@rockbot hi")

        assert await bot.handle_update(message) is True
        handler.assert_awaited_once_with(bot, message, "echo (.+)", ["hi"])

    @pytest.mark.asyncio
    async def test_slash_command_matches_whole_message(self):
        bot = _make_bot(username="rockbot")
        handler = AsyncMock()
        bot.slash_command("start", handler)

        assert await bot.handle_update(_text_message("/start now")) is False
        assert await bot.handle_update(_text_message("/start")) is True

    def test_answer_binds_to_message_chat(self):
        bot = _make_bot()
        builder = bot.answer(_text_message("hi", chat_id=555))
        assert isinstance(builder, ResponseBuilder)
        assert builder.chat_id == 555
        assert builder.state is ResponseState.EMPTY

    def test_send_returns_fresh_builder(self):
        bot = _make_bot()
        assert bot.send(1) is not bot.send(1)

    @pytest.mark.asyncio
    async def test_handler_replies_through_transport(self):
        bot = _make_bot()

        async def echo(bot, message, command, args):
            await bot.answer(message).text(args[0]).end()

        bot.command("echo (.+)", echo)
        await bot.handle_update(_text_message("echo hi", chat_id=99))

        bot.transport.send.assert_awaited_once()
        chat_id, payload = bot.transport.send.await_args.args
        assert chat_id == 99
        assert payload.content == "hi"
