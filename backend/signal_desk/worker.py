import asyncio
import logging
from signal_desk.config import load_settings
from signal_desk.log import setup_logging
from signal_desk.core.pipeline import CancellationToken
from signal_desk.runtime import SignalDesk

log = logging.getLogger("worker")


async def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    desk = SignalDesk(settings)
    try:
        signal = await desk.pipeline.run_cycle(desk.config, CancellationToken())
        state = desk.pipeline.state
        log.info(
            "One-shot cycle complete: %s %s conf=%s price=%s degraded=%s",
            signal.direction.value if signal else None,
            desk.config.symbol,
            signal.confidence if signal else None,
            signal.price if signal else None,
            state.degraded,
        )
    finally:
        await desk.stop()

if __name__ == "__main__":
    asyncio.run(main())
