from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import pandas as pd

from signal_desk.core.aggregator import SignalStateAggregator
from signal_desk.core.dispatcher import NotificationDispatcher
from signal_desk.core.synthetic import BAR_COLUMNS, DEFAULT_SEED_PRICE, MAX_BARS, SyntheticGenerator
from signal_desk.errors import SourceUnavailable
from signal_desk.schemas import PollConfig, Signal
from signal_desk.services.signal_source import SignalSourceAdapter

log = logging.getLogger("core.pipeline")

DEGRADED_MESSAGE = "Demo mode - Backend offline"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class CancellationToken:
    """Flipped once by the scheduler; checked by a cycle after every await."""
    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class DashboardState:
    """
    What the dashboard renders. Replaced field by field by the pipeline only.
    `bars` only ever holds synthetic data.
    """
    signal: Signal | None = None
    degraded: bool = False
    error: str | None = None
    bars: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=BAR_COLUMNS))
    last_cycle_at: datetime | None = None
    notifications_sent: int = 0


class SignalPipeline:
    """
    The per-tick pipeline: fetch-or-fallback -> stats -> trend -> dispatch.

    Steps run strictly in that order. The only suspension points are the two
    network calls; a cancelled token observed after either one ends the cycle
    with no further mutation or side effect.
    """
    def __init__(
        self,
        source: SignalSourceAdapter,
        generator: SyntheticGenerator,
        aggregator: SignalStateAggregator,
        dispatcher: NotificationDispatcher,
        state: DashboardState | None = None,
    ):
        self.source = source
        self.generator = generator
        self.aggregator = aggregator
        self.dispatcher = dispatcher
        self.state = state or DashboardState()
        self.seed_price = DEFAULT_SEED_PRICE

    def seed_chart(self, count: int, start_price: float) -> None:
        self.seed_price = start_price
        self.state.bars = self.generator.bars(min(count, MAX_BARS), start_price)

    async def run_cycle(self, config: PollConfig, token: CancellationToken) -> Signal | None:
        if token.cancelled:
            return None

        # 1. Fetch, or substitute a synthetic signal if the backend is out.
        degraded = False
        try:
            signal = await self.source.fetch(config.base_asset, config.otc, config.timeframe)
        except SourceUnavailable as e:
            degraded = True
            signal = self.generator.mock_signal(config.timeframe)
            if not self.state.degraded:
                log.warning("signal backend unavailable for %s, switching to demo mode: %s", config.symbol, e)
            else:
                log.debug("signal backend still unavailable: %s", e)

        if token.cancelled:
            log.debug("cycle for %s finished after cancellation, result discarded", config.symbol)
            return None

        self._publish(signal, degraded)

        # 2 + 3. Running stats, then price trend.
        self.aggregator.observe(signal)

        # 4. Only active signals are worth an alert.
        if signal.is_active:
            sent = await self.dispatcher.dispatch(signal, config)
            if sent and not token.cancelled:
                self.state.notifications_sent += 1

        return signal

    def _publish(self, signal: Signal, degraded: bool) -> None:
        if degraded:
            self._append_synthetic_bar()
            self.state.error = DEGRADED_MESSAGE
        elif self.state.degraded:
            log.info("signal backend reachable again, leaving demo mode")
            self.state.error = None
        self.state.degraded = degraded
        self.state.signal = signal
        self.state.last_cycle_at = now_utc()

    def _append_synthetic_bar(self) -> None:
        bars = self.state.bars
        if bars.empty:
            # No seed series: the first tick starts from the seed price.
            self.state.bars = self.generator.bars(1, self.seed_price)
            return
        last = bars.iloc[-1]
        tick = self.generator.next_bar(float(last["close"]), int(last["time"]))
        self.state.bars = pd.concat([bars, tick], ignore_index=True).tail(MAX_BARS).reset_index(drop=True)
