"""Tests for the Telegram Bot API transport."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from chatroute.exceptions import ErrorCategory, TransportError
from chatroute.models import Payload, PayloadKind
from chatroute.transport import TelegramTransport

TOKEN = "123456:ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghi"

_SENT = {"message_id": 11, "chat": {"id": 42}, "date": 0}


class _FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class _FakeSession:
    """Records post() calls and replays canned responses."""

    def __init__(self, status=200, body=None, error=None):
        self.status = status
        self.body = body if body is not None else {"ok": True, "result": _SENT}
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.status, self.body)

    async def close(self):
        self.closed = True


def _make_transport(**session_kwargs):
    transport = TelegramTransport(TOKEN, api_url="https://api.example.org/")
    transport.session = _FakeSession(**session_kwargs)
    return transport


class TestCall:
    """Tests for TelegramTransport._call."""

    @pytest.mark.asyncio
    async def test_posts_json_to_method_url(self):
        transport = _make_transport(body={"ok": True, "result": {"id": 1}})
        result = await transport._call("getMe", {})
        assert result == {"id": 1}
        url, kwargs = transport.session.calls[0]
        assert url == f"https://api.example.org/bot{TOKEN}/getMe"
        assert kwargs["json"] == {}

    @pytest.mark.asyncio
    async def test_not_started_raises(self):
        transport = TelegramTransport(TOKEN)
        with pytest.raises(RuntimeError, match="not started"):
            await transport._call("getMe", {})

    @pytest.mark.asyncio
    async def test_api_error_is_permanent(self):
        transport = _make_transport(
            status=400,
            body={"ok": False, "description": "Bad Request: chat not found"},
        )
        with pytest.raises(TransportError) as exc_info:
            await transport._call("sendMessage", {"chat_id": 1, "text": "x"})
        err = exc_info.value
        assert err.method == "sendMessage"
        assert err.status == 400
        assert err.description == "Bad Request: chat not found"
        assert err.category == ErrorCategory.PERMANENT
        assert not err.is_retryable

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self):
        transport = _make_transport(
            status=429, body={"ok": False, "description": "Too Many Requests"}
        )
        with pytest.raises(TransportError) as exc_info:
            await transport._call("sendMessage", {})
        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        transport = _make_transport(status=502, body="<html>Bad Gateway</html>")
        with pytest.raises(TransportError, match="non-JSON"):
            await transport._call("getMe", {})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[1, 2], "ok", None])
    async def test_non_object_json_body(self, body):
        transport = _make_transport(body=json.dumps(body))
        with pytest.raises(TransportError, match="non-object") as exc_info:
            await transport._call("getMe", {})
        assert exc_info.value.status == 200

    @pytest.mark.asyncio
    async def test_client_error_wrapped(self):
        transport = _make_transport(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(TransportError) as exc_info:
            await transport._call("getMe", {})
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self):
        transport = _make_transport(error=asyncio.TimeoutError())
        with pytest.raises(TransportError, match="timed out"):
            await transport._call("getUpdates", {})


class TestSend:
    """Tests for payload-to-method mapping."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kind,method,field",
        [
            (PayloadKind.TEXT, "sendMessage", "text"),
            (PayloadKind.PHOTO, "sendPhoto", "photo"),
            (PayloadKind.AUDIO, "sendAudio", "audio"),
            (PayloadKind.VOICE, "sendVoice", "voice"),
            (PayloadKind.VIDEO, "sendVideo", "video"),
            (PayloadKind.DOCUMENT, "sendDocument", "document"),
            (PayloadKind.STICKER, "sendSticker", "sticker"),
        ],
    )
    async def test_kind_maps_to_method(self, kind, method, field):
        transport = _make_transport()
        transport._call = AsyncMock(return_value=_SENT)
        sent = await transport.send(42, Payload(kind=kind, content="file-id-xyz"))

        assert sent.message_id == 11
        assert sent.chat_id == 42
        args, kwargs = transport._call.await_args
        assert args[0] == method
        assert args[1] == {"chat_id": 42, field: "file-id-xyz"}
        assert kwargs["upload"] is None

    @pytest.mark.asyncio
    async def test_location_params(self):
        transport = _make_transport()
        transport._call = AsyncMock(return_value=_SENT)
        await transport.send(
            42, Payload(kind=PayloadKind.LOCATION, content=(40.3, -4.2))
        )
        args, _ = transport._call.await_args
        assert args[0] == "sendLocation"
        assert args[1] == {"chat_id": 42, "latitude": 40.3, "longitude": -4.2}

    @pytest.mark.asyncio
    async def test_forward_params(self):
        transport = _make_transport()
        transport._call = AsyncMock(return_value=_SENT)
        sent = await transport.send(
            42, Payload(kind=PayloadKind.FORWARD, content=(7, 1234))
        )
        assert sent.message_id == 11
        args, _ = transport._call.await_args
        assert args[0] == "forwardMessage"
        assert args[1] == {"chat_id": 42, "from_chat_id": 7, "message_id": 1234}

    @pytest.mark.asyncio
    async def test_chat_action_returns_bool(self):
        transport = _make_transport(body={"ok": True, "result": True})
        result = await transport.send(
            42, Payload(kind=PayloadKind.ACTION, content="typing")
        )
        assert result is True
        url, kwargs = transport.session.calls[0]
        assert url.endswith("/sendChatAction")
        assert kwargs["json"] == {"chat_id": 42, "action": "typing"}

    @pytest.mark.asyncio
    async def test_options_are_merged(self):
        transport = _make_transport()
        transport._call = AsyncMock(return_value=_SENT)
        payload = Payload(
            kind=PayloadKind.PHOTO,
            content="https://example.org/cat.jpg",
            options={"caption": "cat", "reply_to_message_id": 3},
        )
        await transport.send(42, payload)
        args, kwargs = transport._call.await_args
        assert args[1]["caption"] == "cat"
        assert args[1]["reply_to_message_id"] == 3
        assert args[1]["photo"] == "https://example.org/cat.jpg"
        assert kwargs["upload"] is None

    @pytest.mark.asyncio
    async def test_local_file_is_uploaded(self, tmp_path):
        image = tmp_path / "test.jpg"
        image.write_bytes(b"\xff\xd8\xff")
        transport = _make_transport()
        await transport.send(
            42,
            Payload(kind=PayloadKind.PHOTO, content=str(image), options={"caption": "hi"}),
        )
        url, kwargs = transport.session.calls[0]
        assert url.endswith("/sendPhoto")
        assert isinstance(kwargs["data"], aiohttp.FormData)
        assert "json" not in kwargs

    @pytest.mark.asyncio
    async def test_upload_reads_file_off_the_event_loop(self, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"\x00\x00\x00\x18ftyp")
        transport = _make_transport()
        with patch(
            "chatroute.transport.asyncio.to_thread", wraps=asyncio.to_thread
        ) as to_thread:
            await transport.send(42, Payload(kind=PayloadKind.VIDEO, content=str(video)))
        to_thread.assert_called_once_with(video.read_bytes)

    @pytest.mark.asyncio
    async def test_text_that_looks_like_a_path_is_not_uploaded(self, tmp_path):
        existing = tmp_path / "notes.txt"
        existing.write_text("x")
        transport = _make_transport()
        transport._call = AsyncMock(return_value=_SENT)
        await transport.send(42, Payload(kind=PayloadKind.TEXT, content=str(existing)))
        _, kwargs = transport._call.await_args
        assert kwargs["upload"] is None

    @pytest.mark.asyncio
    async def test_send_error_propagates(self):
        transport = _make_transport(status=403, body={"ok": False, "description": "Forbidden"})
        with pytest.raises(TransportError):
            await transport.send(42, Payload(kind=PayloadKind.TEXT, content="x"))


class TestPolling:
    """Tests for getMe/getUpdates helpers and lifecycle."""

    @pytest.mark.asyncio
    async def test_get_updates_params(self):
        transport = _make_transport()
        transport._call = AsyncMock(return_value=[])
        await transport.get_updates(offset=5, timeout=20)
        args, kwargs = transport._call.await_args
        assert args == ("getUpdates", {"timeout": 20, "offset": 5})
        assert kwargs["timeout"] >= 30

    @pytest.mark.asyncio
    async def test_get_updates_without_offset(self):
        transport = _make_transport()
        transport._call = AsyncMock(return_value=[])
        await transport.get_updates(timeout=0)
        args, _ = transport._call.await_args
        assert args[1] == {"timeout": 0}

    @pytest.mark.asyncio
    async def test_close_closes_session(self):
        transport = _make_transport()
        session = transport.session
        await transport.close()
        assert session.closed is True
        assert transport.session is None

    @pytest.mark.asyncio
    async def test_context_manager_opens_real_session(self):
        async with TelegramTransport(TOKEN) as transport:
            assert isinstance(transport.session, aiohttp.ClientSession)
        assert transport.session is None
