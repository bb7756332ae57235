"""Command-line entry point for switchboard.

Runs the bot on the local console client until input ends or the
process receives SIGINT/SIGTERM.

Key functions:
    serve: Drive one client/bot pair until either side finishes.
    main: Async entry point (logging, config, signals, serve).
    run: ``switchboard`` console script.
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .bot import SwitchboardBot
from .config import get_config
from .console import ConsoleClient
from .logging_config import setup_logging

logger = structlog.get_logger("switchboard.bot")


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def request_stop(sig: signal.Signals) -> None:
        logger.info("shutdown_signal_received", signal=sig.name)
        stop.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, request_stop, sig)
        except NotImplementedError:
            # Windows: Ctrl+C still surfaces as KeyboardInterrupt in run()
            pass


async def serve(bot: SwitchboardBot, client, stop: asyncio.Event) -> None:
    """Run ``client`` for ``bot`` until the client returns or ``stop`` is set.

    The bot is always stopped afterwards. An exception from the client,
    such as a RegistryLoadError during startup, propagates.
    """
    client_task = asyncio.create_task(client.run(bot))
    stop_task = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait(
            {client_task, stop_task}, return_when=asyncio.FIRST_COMPLETED,
        )
        if client_task in done:
            client_task.result()
    finally:
        for task in (client_task, stop_task):
            task.cancel()
        await asyncio.gather(client_task, stop_task, return_exceptions=True)
        await bot.stop()


async def main():
    """Main async entry point."""
    setup_logging()
    logger.info("switchboard_starting", version=__version__)

    config = get_config()
    setup_logging(config)
    config.validate()

    stop = asyncio.Event()
    _install_signal_handlers(stop)

    client = ConsoleClient()
    try:
        await serve(SwitchboardBot(client, config=config), client, stop)
    except Exception as e:
        logger.error("bot_error", error=str(e), error_type=type(e).__name__)
        raise
    logger.info("switchboard_stopped")


def run():
    """Synchronous entry point for the ``switchboard`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)


if __name__ == "__main__":
    run()
