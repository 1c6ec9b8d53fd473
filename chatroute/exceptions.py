"""Custom exception hierarchy for chatroute.

Provides precise error classification across the router, the response
builder, and the transport, so callers can tell programmer mistakes
(bad patterns, builder misuse) apart from network failures.

Key classes:
    ChatrouteError: Base class for every error raised by chatroute.
    PatternError: Malformed command specification at registration time.
    ResponseError: Response builder misuse (and its subclasses).
    TransportError: Failure reported by the transport on send/poll.
    ConfigurationError: Invalid or missing configuration.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry decisions."""
    TRANSIENT = "transient"          # Worth retrying (timeout, 5xx, rate limit)
    PERMANENT = "permanent"          # Not worth retrying (bad request, forbidden)
    USAGE = "usage"                  # Programmer error in handler code
    INFRASTRUCTURE = "infrastructure"  # Missing token, env issues


class ChatrouteError(Exception):
    """Base exception for all chatroute errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "patterns").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Routing exceptions
# ---------------------------------------------------------------------------

class PatternError(ChatrouteError):
    """A command specification could not be compiled.

    Raised at registration time, never during dispatch.

    Attributes:
        spec: The offending command specification.
    """

    def __init__(
        self,
        message: str = "",
        *,
        spec: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.USAGE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.spec = spec
        super().__init__(
            message, category=category, module=module or "patterns", **context
        )


# ---------------------------------------------------------------------------
# Response builder exceptions
# ---------------------------------------------------------------------------

class ResponseError(ChatrouteError):
    """Misuse of a ResponseBuilder.

    Attributes:
        chat_id: Target chat of the builder that was misused.
    """

    def __init__(
        self,
        message: str = "",
        *,
        chat_id: Optional[int] = None,
        category: ErrorCategory = ErrorCategory.USAGE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.chat_id = chat_id
        super().__init__(
            message, category=category, module=module or "response", **context
        )


class EmptyResponseError(ResponseError):
    """end() (or a modifier) was called before any payload was set."""


class AlreadySentError(ResponseError):
    """The builder was used after its payload had already been sent."""


class PayloadConflictError(ResponseError):
    """A second payload was set on a builder that already holds one."""


# ---------------------------------------------------------------------------
# Transport exceptions
# ---------------------------------------------------------------------------

class TransportError(ChatrouteError):
    """Error reported by the transport while talking to the Bot API.

    Propagated unchanged to the caller of ResponseBuilder.end(); the
    router never retries.

    Attributes:
        method: Bot API method that failed (e.g. "sendMessage").
        status: HTTP status code, if a response was received.
        description: Error description returned by the API, if any.
    """

    def __init__(
        self,
        message: str = "",
        *,
        method: Optional[str] = None,
        status: Optional[int] = None,
        description: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.method = method
        self.status = status
        self.description = description
        super().__init__(
            message, category=category, module=module or "transport", **context
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(ChatrouteError):
    """Invalid or missing configuration.

    Defaults to INFRASTRUCTURE because config issues are environmental
    and won't resolve by retrying.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )
