"""Command pattern compilation and matching.

A command specification is a regular expression with capture groups.
Matching is anchored at the start of the message text (``re.match``)
but not at the end; specs that must cover the whole message end with
``$``, which slash_command_spec() adds automatically.

Key classes:
    CommandPattern: Immutable compiled specification.

Key functions:
    compile_pattern: Compile a spec, raising PatternError when invalid.
    try_match: Match text, returning the ordered captures or None.
    slash_command_spec: Rewrite "echo (.+)" into "^/echo(?:@bot)? (.+)$".
"""

import re
from dataclasses import dataclass
from typing import List, Optional

import structlog

from .exceptions import PatternError

logger = structlog.get_logger("chatroute.router")


@dataclass(frozen=True)
class CommandPattern:
    """A compiled command specification.

    Attributes:
        spec: The source specification, exactly as registered.
        regex: The compiled pattern.
    """

    spec: str
    regex: "re.Pattern[str]"

    @property
    def group_count(self) -> int:
        return self.regex.groups


def compile_pattern(spec: str) -> CommandPattern:
    """Compile a command specification.

    Args:
        spec: Regular expression with zero or more capture groups.

    Returns:
        The compiled CommandPattern.

    Raises:
        PatternError: If spec is not a non-empty string or is not a
            valid regular expression (unbalanced groups, bad escapes).
    """
    if not isinstance(spec, str):
        raise PatternError(
            f"Command specification must be a string, got {type(spec).__name__}",
            spec=repr(spec),
        )
    if not spec:
        raise PatternError("Command specification must not be empty", spec=spec)
    try:
        regex = re.compile(spec)
    except re.error as e:
        logger.debug("pattern_compile_failed", spec=spec, error=str(e))
        raise PatternError(
            f"Invalid command specification {spec!r}: {e}", spec=spec
        ) from e
    return CommandPattern(spec=spec, regex=regex)


def try_match(pattern: CommandPattern, text: str) -> Optional[List[Optional[str]]]:
    """Match text against a compiled pattern.

    Returns one element per capture group, left to right. Groups that
    did not take part in the match (optional groups) are None, never
    an empty string, so argument positions stay stable.

    Returns:
        The captured arguments, or None when the text does not match.
    """
    match = pattern.regex.match(text)
    if match is None:
        return None
    return list(match.groups())


def slash_command_spec(spec: str, username: str = "") -> str:
    """Rewrite a short command spec into an anchored slash-command regex.

    The first word becomes the command name and accepts an optional
    ``@username`` suffix (Telegram appends it in group chats). A leading
    ``/`` and ``^`` are added unless spec already starts with ``^/``,
    and the result always ends with ``$``.

    Examples (username "rock"):
        "echo (.+)"  -> "^/echo(?:@rock)? (.+)$"
        "/test$"     -> "^/test(?:@rock)?$"
    """
    words = spec.split()
    if words:
        command = words[0]
        trailing = ""
        if command.endswith("$"):
            trailing = "$"
            command = command[:-1]
        suffix = f"(?:@{re.escape(username)})?" if username else ""
        words[0] = f"{command}{suffix}{trailing}"

    result = " ".join(words)
    if not result.startswith("^/"):
        if not result.startswith("/"):
            result = "/" + result
        if not spec.startswith("^"):
            result = "^" + result
    if not result.endswith("$"):
        result += "$"
    return result
