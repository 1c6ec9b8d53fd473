"""Command table: ordered registration and first-match resolution.

Handlers are registered against command specifications and kept in
registration order. Resolution walks the entries from first to last
and stops at the first pattern that matches, so registration order is
part of the public contract: register specific patterns before the
general ones that would shadow them.

Key classes:
    Handler: Protocol every command handler satisfies.
    CommandEntry: A compiled pattern bound to a handler and a label.
    CommandTable: The ordered collection of entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Iterator,
    List,
    Optional,
    Protocol,
    Tuple,
    Union,
)

import structlog

from ..patterns import CommandPattern, compile_pattern, try_match

if TYPE_CHECKING:
    from ..bot import Bot
    from ..models import Message

logger = structlog.get_logger("chatroute.router")

Captures = List[Optional[str]]


class Handler(Protocol):
    """A command handler.

    Called with the bot, the message being handled, the label of the
    matched command and its captured arguments. May be a plain function
    or a coroutine function; the return value is ignored.
    """

    def __call__(
        self, bot: "Bot", message: "Message", command: str, args: Captures
    ) -> Union[None, Awaitable[None]]:
        ...


@dataclass(frozen=True)
class CommandEntry:
    """A registered command.

    Attributes:
        pattern: The compiled command specification.
        handler: Callable invoked when the pattern matches.
        label: Human-readable name, used in logs and passed to the
            handler. Not required to be unique.
    """

    pattern: CommandPattern
    handler: Handler
    label: str


class CommandTable:
    """Ordered mapping from command pattern to handler.

    Entries are only ever appended. Duplicate specifications are legal;
    the earlier registration wins and the later one is shadowed.
    """

    def __init__(self):
        self._entries: List[CommandEntry] = []

    def register(
        self, spec: str, handler: Handler, label: Optional[str] = None
    ) -> CommandEntry:
        """Compile spec and append a new entry.

        Args:
            spec: Command specification (regular expression).
            handler: Callable to invoke on match.
            label: Name passed to the handler; defaults to spec.

        Returns:
            The new CommandEntry.

        Raises:
            PatternError: If spec does not compile. The table is left
                unchanged.
            TypeError: If handler is not callable.
        """
        if not callable(handler):
            raise TypeError(
                f"Handler for {spec!r} must be callable, got {type(handler).__name__}"
            )
        pattern = compile_pattern(spec)
        entry = CommandEntry(
            pattern=pattern,
            handler=handler,
            label=label if label is not None else spec,
        )
        if any(e.pattern.spec == spec for e in self._entries):
            logger.warning("command_shadowed", command=entry.label, spec=spec)
        self._entries.append(entry)
        logger.debug(
            "command_registered",
            command=entry.label,
            spec=spec,
            groups=pattern.group_count,
            position=len(self._entries) - 1,
        )
        return entry

    def resolve(self, text: str) -> Optional[Tuple[CommandEntry, Captures]]:
        """Find the first entry whose pattern matches text.

        Returns:
            (entry, captured arguments), or None when nothing matches.
        """
        for entry in self._entries:
            args = try_match(entry.pattern, text)
            if args is not None:
                return entry, args
        return None

    @property
    def labels(self) -> List[str]:
        """Labels of all entries, in registration order."""
        return [entry.label for entry in self._entries]

    def __iter__(self) -> Iterator[CommandEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
