"""
Synthetic data for degraded mode.

When the signal backend is unreachable, the dashboard keeps moving on
plausible-looking data: a random active Signal per cycle and a random-walk
OHLC series for the chart. Nothing here performs I/O.
"""
from __future__ import annotations

import time

import numpy as np
import pandas as pd

from signal_desk.schemas import Direction, Signal, SignalStatus

BAR_SECONDS = 60
BAR_COLUMNS = ["time", "open", "high", "low", "close"]

# Random-walk bounds per bar
MAX_BODY_MOVE = 0.0004
MAX_WICK = 0.0003

MOCK_PRICE_LOW = 1.085
MOCK_PRICE_SPAN = 0.001

DEFAULT_SEED_PRICE = 1.0850
# Largest series the chart ever keeps or serves.
MAX_BARS = 5000


class SyntheticGenerator:
    """
    Produces fallback Signals and OHLC bars.
    Holds only a numpy Generator, so a seeded instance is fully reproducible.
    """
    def __init__(self, rng: np.random.Generator | None = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def mock_signal(self, timeframe: str) -> Signal:
        direction = Direction.CALL if self.rng.random() < 0.5 else Direction.PUT
        # integers() has an exclusive upper bound.
        confidence = int(self.rng.integers(80, 91))
        price = MOCK_PRICE_LOW + self.rng.random() * MOCK_PRICE_SPAN
        rsi = int(self.rng.integers(30, 71))
        return Signal(
            status=SignalStatus.ACTIVE,
            direction=direction,
            confidence=confidence,
            price=f"{price:.5f}",
            expire=timeframe,
            technical={"rsi": rsi, "macd": 0.0001, "pattern": "Hammer"},
        )

    def bars(self, count: int, start_price: float, now: float | None = None) -> pd.DataFrame:
        """
        Random-walk OHLC series.

        Bars are spaced BAR_SECONDS apart and end one bar before `now`. Each
        open is the previous close; the first open is `start_price`.
        """
        if count < 1:
            return pd.DataFrame(columns=BAR_COLUMNS)

        now_s = int(time.time() if now is None else now)

        # Now, we draw all the randomness up front, one column per component.
        moves = self.rng.uniform(-MAX_BODY_MOVE, MAX_BODY_MOVE, size=count)
        upper_wicks = self.rng.uniform(0.0, MAX_WICK, size=count)
        lower_wicks = self.rng.uniform(0.0, MAX_WICK, size=count)

        # Now, we chain the bodies: close_i = start + sum(moves[:i+1]), open_i = close_{i-1}.
        closes = start_price + np.cumsum(moves)
        opens = np.concatenate(([start_price], closes[:-1]))

        highs = np.maximum(opens, closes) + upper_wicks
        lows = np.minimum(opens, closes) - lower_wicks
        times = now_s - (count - np.arange(count)) * BAR_SECONDS

        return pd.DataFrame(
            {
                "time": times.astype("int64"),
                "open": opens,
                "high": highs,
                "low": lows,
                "close": closes,
            },
            columns=BAR_COLUMNS,
        )

    def next_bar(self, last_close: float, last_time: int) -> pd.DataFrame:
        """One synthetic tick continuing the series, one bar after `last_time`."""
        # bars() ends its series one bar before `now`.
        return self.bars(1, last_close, now=last_time + 2 * BAR_SECONDS)
