"""Tab Timer entry point."""

import asyncio
import contextlib
import logging
import signal

from tabtimer.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
# Skipped poll ticks while a page load is pending are expected
logging.getLogger("apscheduler.scheduler").setLevel(logging.ERROR)
logger = logging.getLogger(__name__)


async def run() -> None:
    """Run the service until SIGINT/SIGTERM."""
    from tabtimer.app import TimerService

    service = TimerService()
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    await service.start()
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down...")
        await service.stop()


def main() -> None:
    """Start Tab Timer."""
    logger.info("Starting %s...", settings.app_name)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())


if __name__ == "__main__":
    main()
