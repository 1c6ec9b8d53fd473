"""Telegram Bot API transport.

The router only needs ``send(chat_id, payload)`` from a transport; the
Transport protocol captures that. TelegramTransport implements it over
aiohttp, together with the getMe/getUpdates calls the update poller
needs. Failures are raised as TransportError and never retried here.

Key classes:
    Transport: Protocol required by ResponseBuilder.
    TelegramTransport: aiohttp-based Bot API client.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

import aiohttp
import structlog

from .exceptions import ErrorCategory, TransportError
from .models import Payload, PayloadKind, SentMessage

logger = structlog.get_logger("chatroute.transport")

DEFAULT_API_URL = "https://api.telegram.org"

# payload kind -> (Bot API method, field carrying the content)
_SEND_METHODS: Dict[PayloadKind, Tuple[str, Optional[str]]] = {
    PayloadKind.TEXT: ("sendMessage", "text"),
    PayloadKind.PHOTO: ("sendPhoto", "photo"),
    PayloadKind.AUDIO: ("sendAudio", "audio"),
    PayloadKind.VOICE: ("sendVoice", "voice"),
    PayloadKind.VIDEO: ("sendVideo", "video"),
    PayloadKind.DOCUMENT: ("sendDocument", "document"),
    PayloadKind.STICKER: ("sendSticker", "sticker"),
    PayloadKind.LOCATION: ("sendLocation", None),
    PayloadKind.FORWARD: ("forwardMessage", None),
    PayloadKind.ACTION: ("sendChatAction", "action"),
}


class Transport(Protocol):
    """What the response builder needs from a transport."""

    async def send(
        self, chat_id: int, payload: Payload
    ) -> Union[SentMessage, bool]:
        ...


def _local_file(ref: str) -> Optional[Path]:
    """Return ref as a Path if it names an existing local file.

    Anything else (file_id, http URL) is passed to the API verbatim.
    """
    if "://" in ref:
        return None
    path = Path(ref).expanduser()
    try:
        return path if path.is_file() else None
    except OSError:
        return None


def _form_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


class TelegramTransport:
    """Bot API client over a single aiohttp session.

    Use as an async context manager, or call start()/close() explicitly.

    Args:
        token: Bot token issued by @BotFather.
        api_url: Base URL of the Bot API server.
        timeout: Total timeout in seconds for ordinary requests.
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
    ):
        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "TelegramTransport":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def start(self) -> None:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None

    def _method_url(self, method: str) -> str:
        return f"{self.api_url}/bot{self._token}/{method}"

    async def _call(
        self,
        method: str,
        params: Dict[str, Any],
        *,
        upload: Optional[Tuple[str, Path]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Invoke a Bot API method and return its ``result`` field.

        Args:
            method: Bot API method name.
            params: Method parameters.
            upload: Optional (field, path) to send as multipart file.
            timeout: Override of the request timeout in seconds.

        Raises:
            TransportError: On connection errors, timeouts, non-JSON
                bodies, and responses with ``ok: false``.
        """
        if self.session is None:
            raise RuntimeError("Transport not started, call start() first")

        kwargs: Dict[str, Any] = {
            "timeout": aiohttp.ClientTimeout(total=timeout or self.timeout),
        }
        if upload is not None:
            field, path = upload
            form = aiohttp.FormData()
            for key, value in params.items():
                form.add_field(key, _form_value(value))
            content = await asyncio.to_thread(path.read_bytes)
            form.add_field(field, content, filename=path.name)
            kwargs["data"] = form
        else:
            kwargs["json"] = params

        try:
            async with self.session.post(self._method_url(method), **kwargs) as resp:
                status = resp.status
                raw = await resp.text()
        except asyncio.TimeoutError as e:
            logger.warning("api_request_timeout", method=method)
            raise TransportError(
                f"{method} timed out", method=method
            ) from e
        except aiohttp.ClientError as e:
            logger.warning("api_request_error", method=method, error=str(e))
            raise TransportError(
                f"{method} failed: {e}", method=method
            ) from e

        try:
            body = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("api_invalid_json", method=method, status=status, body=raw[:200])
            raise TransportError(
                f"{method} returned a non-JSON response",
                method=method,
                status=status,
            ) from e

        if not isinstance(body, dict):
            logger.warning("api_unexpected_body", method=method, status=status, body=raw[:200])
            raise TransportError(
                f"{method} returned a non-object response",
                method=method,
                status=status,
            )

        if status != 200 or not body.get("ok"):
            description = body.get("description", "")
            category = (
                ErrorCategory.TRANSIENT
                if status == 429 or status >= 500
                else ErrorCategory.PERMANENT
            )
            logger.warning(
                "api_request_failed",
                method=method,
                status=status,
                description=description,
            )
            raise TransportError(
                f"{method} failed with status {status}: {description}",
                method=method,
                status=status,
                description=description,
                category=category,
            )
        return body.get("result")

    async def send(
        self, chat_id: int, payload: Payload
    ) -> Union[SentMessage, bool]:
        """Deliver one payload to a chat.

        Returns:
            The sent message as acknowledged by the API, or the API's
            boolean result for a chat action.
        """
        method, field = _SEND_METHODS[payload.kind]
        params: Dict[str, Any] = {"chat_id": chat_id}
        upload = None

        if payload.kind is PayloadKind.LOCATION:
            params["latitude"], params["longitude"] = payload.content
        elif payload.kind is PayloadKind.FORWARD:
            params["from_chat_id"], params["message_id"] = payload.content
        elif payload.kind in (PayloadKind.TEXT, PayloadKind.ACTION):
            params[field] = payload.content
        else:
            path = _local_file(payload.content)
            if path is not None:
                upload = (field, path)
            else:
                params[field] = payload.content

        params.update(payload.options)
        result = await self._call(method, params, upload=upload)
        if payload.kind is PayloadKind.ACTION:
            # sendChatAction returns True, not a Message
            logger.debug("chat_action_sent", chat_id=chat_id, action=payload.content)
            return bool(result)
        sent = SentMessage.from_telegram(result)
        logger.info(
            "message_sent",
            method=method,
            chat_id=chat_id,
            message_id=sent.message_id,
            uploaded=upload is not None,
        )
        return sent

    async def get_me(self) -> Dict[str, Any]:
        """Return the bot's own User object."""
        return await self._call("getMe", {})

    async def get_updates(
        self, offset: Optional[int] = None, timeout: int = 20
    ) -> List[Dict[str, Any]]:
        """Long-poll for updates newer than offset.

        Args:
            offset: First update_id to return.
            timeout: Long-poll duration in seconds; the HTTP timeout is
                extended past it so the server closes first.
        """
        params: Dict[str, Any] = {"timeout": timeout}
        if offset is not None:
            params["offset"] = offset
        return await self._call(
            "getUpdates", params, timeout=max(self.timeout, timeout + 10)
        )
