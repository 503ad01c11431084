from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from signal_desk.config import Settings
from signal_desk.core.aggregator import SignalStateAggregator
from signal_desk.core.dispatcher import NotificationDispatcher
from signal_desk.core.pipeline import SignalPipeline
from signal_desk.core.scheduler import PollingScheduler
from signal_desk.core.synthetic import SyntheticGenerator
from signal_desk.errors import ConfigError
from signal_desk.schemas import ConfigUpdate, PollConfig
from signal_desk.services.signal_source import SignalSourceAdapter
from signal_desk.services.telegram import TelegramClient

log = logging.getLogger("runtime")


def initial_config(settings: Settings) -> PollConfig:
    return PollConfig(
        base_asset=settings.base_asset,
        otc=settings.otc,
        timeframe=settings.timeframe,
        poll_interval_ms=settings.poll_interval_ms,
        cooldown_ms=settings.cooldown_ms,
    )


class SignalDesk:
    """
    Composition root.
    Builds every component from Settings and owns the live PollConfig the
    dashboard edits. Components never reach for globals; they get what they
    need through their constructors.
    """
    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        generator: SyntheticGenerator | None = None,
        scheduler: PollingScheduler | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.settings = settings
        self.config = initial_config(settings)

        self.source = SignalSourceAdapter(
            settings.api_base, client=http_client, timeout=settings.request_timeout_seconds
        )
        self.telegram = TelegramClient(
            settings.telegram_api_base, client=http_client, timeout=settings.request_timeout_seconds
        )
        self.dispatcher = dispatcher or NotificationDispatcher(
            self.telegram, settings.telegram_token, settings.telegram_chat_id
        )
        self.pipeline = SignalPipeline(
            source=self.source,
            generator=generator or SyntheticGenerator(),
            aggregator=SignalStateAggregator(),
            dispatcher=self.dispatcher,
        )
        self.scheduler = scheduler or PollingScheduler(self.pipeline)
        self.started = False

    def start(self) -> None:
        # Now, we seed the chart with synthetic bars before the first tick.
        self.pipeline.seed_chart(self.settings.seed_bars, self.settings.seed_price)
        self.scheduler.configure(self.config)
        self.started = True
        log.info("SignalDesk started against %s", self.settings.api_base)

    async def stop(self) -> None:
        self.scheduler.shutdown()
        self.started = False
        await self.source.aclose()
        await self.telegram.aclose()

    def update_config(self, update: ConfigUpdate) -> PollConfig:
        """
        Merge a partial update. Raises ConfigError on invalid values.
        The timer restarts only if the polling key changed.
        """
        changes = update.model_dump(
            exclude_none=True, exclude={"telegram_token", "telegram_chat_id"}
        )
        try:
            new_config = PollConfig.model_validate({**self.config.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigError(str(e)) from e

        self.dispatcher.update_credentials(update.telegram_token, update.telegram_chat_id)

        self.config = new_config
        if self.started:
            self.scheduler.configure(new_config)
        return new_config
