"""
Signal State Aggregator.

Owns the running statistics and the price trend. Both are updated once per
poll cycle, whether the Signal was fetched or synthesized.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

from signal_desk.errors import MalformedPrice
from signal_desk.schemas import Signal

log = logging.getLogger("core.aggregator")

SEED_WIN_RATE = 85.0
SEED_AVG_CONFIDENCE = 85.0


@dataclass(frozen=True)
class RunningStats:
    total_signals: int = 0
    wins: int = 0
    win_rate: float = SEED_WIN_RATE
    avg_confidence: float = SEED_AVG_CONFIDENCE


@dataclass(frozen=True)
class TrendState:
    previous_price: float | None = None
    delta: float | None = None

    @property
    def direction(self) -> str | None:
        if self.delta is None:
            return None
        if self.delta > 0:
            return "up"
        if self.delta < 0:
            return "down"
        return "flat"


def parse_price(raw: str) -> float:
    """Parse a decimal price string. Raises MalformedPrice on garbage, NaN or inf."""
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise MalformedPrice(f"cannot parse price {raw!r}") from e
    if not math.isfinite(value):
        raise MalformedPrice(f"non-finite price {raw!r}")
    return value


class SignalStateAggregator:
    """
    Stateful consumer of Signals.

    Every observed Signal counts as a win: nothing in this system resolves a
    signal against a trade outcome, so `wins` mirrors `total_signals`. Win rate
    and average confidence are derived from the counters rather than held at
    their seed values; the seeds are only shown before the first observation.
    """
    def __init__(self, stats: RunningStats | None = None, trend: TrendState | None = None):
        self._stats = stats or RunningStats()
        self._trend = trend or TrendState()
        self._confidence_sum = self._stats.avg_confidence * self._stats.total_signals

    def stats(self) -> RunningStats:
        return self._stats

    def trend(self) -> TrendState:
        return self._trend

    def observe(self, signal: Signal) -> tuple[RunningStats, TrendState]:
        self._update_stats(signal)
        self._update_trend(signal)
        return self._stats, self._trend

    def _update_stats(self, signal: Signal) -> None:
        total = self._stats.total_signals + 1
        wins = self._stats.wins + 1
        self._confidence_sum += signal.confidence
        self._stats = RunningStats(
            total_signals=total,
            wins=wins,
            win_rate=100.0 * wins / total,
            avg_confidence=self._confidence_sum / total,
        )

    def _update_trend(self, signal: Signal) -> None:
        try:
            price = parse_price(signal.price)
        except MalformedPrice as e:
            # Skip this cycle's trend only; previous price stays for the next one.
            log.warning("trend not updated: %s", e)
            return

        previous = self._trend.previous_price
        if previous is None:
            self._trend = replace(self._trend, previous_price=price)
            return
        self._trend = TrendState(previous_price=price, delta=price - previous)
