"""Logging setup for chatroute.

structlog events are handed to stdlib logging unrendered
(``ProcessorFormatter.wrap_for_formatter``) and every handler renders
them itself: the console gets structlog's coloured ConsoleRenderer,
the rotating files get one JSON object per line. Bot tokens are scrubbed
on both paths, including records from plain stdlib loggers such as
aiohttp's.

Files under the log directory:
    chatroute.log   every chatroute.* event
    <subsystem>.log events of chatroute.<subsystem> only
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, NamedTuple

import structlog

SUBSYSTEMS = ("bot", "router", "transport", "poller")

LOGGER_PREFIX = "chatroute"

_SECRET_PATTERNS = [
    # Bot API URLs carry the token in the path (/bot<token>/method)
    re.compile(r"/bot\d{5,}:[A-Za-z0-9_-]{30,}"),
    # Bare bot tokens (<bot id>:<35 char secret>)
    re.compile(r"\b\d{5,}:[A-Za-z0-9_-]{30,}"),
]

_REDACTED = "***REDACTED***"


def _scrub_value(value: str) -> str:
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs bot tokens.

    Walks all string values in the event dict (one level into lists,
    tuples and dicts) and replaces token matches with a redacted
    placeholder. aiohttp errors include the request URL, which embeds
    the token.
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


class _Settings(NamedTuple):
    log_dir: Path
    level: int
    subsystem_levels: Dict[str, int]
    max_bytes: int
    backup_count: int
    cache_loggers: bool


def _level(name: str, default: int) -> int:
    if not name:
        return default
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


def _resolve_settings(config) -> _Settings:
    if config is None:
        # Bootstrap defaults; loggers are not cached so the second call
        # with the real config takes effect everywhere.
        return _Settings(
            log_dir=Path(__file__).parent.parent / "logs",
            level=logging.INFO,
            subsystem_levels={},
            max_bytes=10 * 1024 * 1024,
            backup_count=5,
            cache_loggers=False,
        )
    level = _level(config.logging_level, logging.INFO)
    return _Settings(
        log_dir=Path(config.log_dir),
        level=level,
        subsystem_levels={
            name: _level(value, level)
            for name, value in config.logging_subsystem_levels.items()
        },
        max_bytes=config.logging_max_file_size_mb * 1024 * 1024,
        backup_count=config.logging_backup_count,
        cache_loggers=True,
    )


def _pre_chain() -> List[Any]:
    """Processors shared by structlog events and foreign stdlib records."""
    return [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _console_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
    )


def _file_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            # Render tracebacks to text first so they get scrubbed too
            structlog.processors.format_exc_info,
            sanitize_secrets,
            structlog.processors.JSONRenderer(),
        ],
    )


def _rotating_handler(
    path: Path, level: int, settings: _Settings, formatter: logging.Formatter
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _reset_logger(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            handler.close()
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = True
    return logger


def setup_logging(config=None) -> None:
    """Configure structlog and the stdlib handler tree.

    Called twice by main(): once with no config so startup errors are
    logged, and again once Config has loaded. Safe to call repeatedly;
    handlers from the previous call are closed and replaced.

    If the log directory cannot be created, logging falls back to the
    console only.
    """
    settings = _resolve_settings(config)

    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        files_enabled = True
    except OSError as exc:
        print(
            f"WARNING: Cannot create log directory {settings.log_dir}: {exc}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )
        files_enabled = False

    # Handlers filter by level; the loggers themselves pass everything
    root = _reset_logger("", logging.DEBUG)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)
    console.setFormatter(_console_formatter())
    root.addHandler(console)

    file_formatter = _file_formatter()
    package_logger = _reset_logger(LOGGER_PREFIX, logging.DEBUG)
    if files_enabled:
        package_logger.addHandler(_rotating_handler(
            settings.log_dir / f"{LOGGER_PREFIX}.log",
            settings.level, settings, file_formatter,
        ))

    for subsystem in SUBSYSTEMS:
        level = settings.subsystem_levels.get(subsystem, settings.level)
        sub_logger = _reset_logger(f"{LOGGER_PREFIX}.{subsystem}", level)
        if files_enabled:
            sub_logger.addHandler(_rotating_handler(
                settings.log_dir / f"{subsystem}.log",
                level, settings, file_formatter,
            ))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=settings.cache_loggers,
    )
