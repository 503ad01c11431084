import logging

# Loggers that would otherwise echo full request URLs, which for Telegram
# contain the bot token.
_QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default")


def setup_logging(level: str | int = logging.INFO) -> None:
    # Now, we configure the global logging system.
    # We use a predictable format including Timestamp, Log Level, Logger Name, and Message.
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
