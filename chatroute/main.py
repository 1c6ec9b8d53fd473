"""Main entry point for chatroute.

Initializes logging in two phases (defaults then config-driven),
connects to the Bot API, registers the demo commands, and runs the
update poller with graceful shutdown on SIGTERM/SIGINT.

Key functions:
    main: Async entry point.
    run: Synchronous wrapper for the ``chatroute`` console script.
"""

import asyncio
import signal
import sys

import structlog

from .logging_config import setup_logging


async def main():
    """Main async entry point."""
    # Phase 1: defaults, cache_logger_on_first_use=False
    setup_logging()
    logger = structlog.get_logger("chatroute.bot")

    from . import __version__
    from .bot import Bot
    from .config import get_config
    from .demo import register_demo_commands
    from .poller import UpdatePoller
    from .transport import TelegramTransport

    logger.info("chatroute_starting", version=__version__)

    config = get_config()
    config.validate()

    # Phase 2: reconfigure with real config, cache_logger_on_first_use=True
    setup_logging(config)

    transport = TelegramTransport(
        config.bot_token,
        api_url=config.api_url,
        timeout=config.request_timeout,
    )
    async with transport:
        me = await transport.get_me()
        username = me.get("username") or ""
        logger.info("bot_identified", username=username, bot_id=me.get("id"))

        bot = register_demo_commands(Bot(transport, username=username))
        poller = UpdatePoller(
            bot,
            transport,
            poll_timeout=config.poll_timeout,
            error_delay=config.poll_error_delay,
            handle_edited=config.handle_edited_messages,
        )

        loop = asyncio.get_running_loop()
        shutdown_event = asyncio.Event()

        def handle_shutdown(sig):
            logger.info("shutdown_signal_received", signal=sig.name)
            shutdown_event.set()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, handle_shutdown, sig)
            except NotImplementedError:
                # Windows: fall back to signal.signal for SIGINT
                if sig == signal.SIGINT:
                    signal.signal(
                        signal.SIGINT,
                        lambda s, f: handle_shutdown(signal.SIGINT),
                    )

        poll_task = asyncio.create_task(poller.run())
        stop_task = asyncio.create_task(shutdown_event.wait())
        try:
            await asyncio.wait(
                {poll_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            poller.stop()
            for task in (poll_task, stop_task):
                task.cancel()
            await asyncio.gather(poll_task, stop_task, return_exceptions=True)
            logger.info("chatroute_stopped")

        # Surface a crash of the poll loop itself
        if poll_task.done() and not poll_task.cancelled() and poll_task.exception():
            raise poll_task.exception()


def run():
    """Synchronous entry point for the ``chatroute`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)


if __name__ == "__main__":
    run()
