"""
Pydantic schemas for SignalDesk.
Defines the Signal payload, the dashboard's polling configuration and the
data transfer objects served by the API.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from signal_desk.config import COOLDOWNS_MS, POLL_INTERVALS_MS, SPOT_ASSETS, TIMEFRAMES


class SignalStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Direction(str, Enum):
    CALL = "CALL"
    PUT = "PUT"


class Signal(BaseModel):
    """
    One prediction payload for an instrument at a point in time.

    Frozen: every poll cycle produces a new Signal, nothing edits an old one.
    Enrichment fields the backend adds (confluence_score, sentiment,
    performance, risk_pct, ...) are kept as extras and never inspected here.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    status: SignalStatus
    direction: Direction
    confidence: int = Field(ge=0, le=100)
    price: str
    expire: str
    technical: dict[str, Any] | None = None

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_text(cls, v: Any) -> Any:
        # Some backends send the price as a JSON number; we keep the text form.
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_active(self) -> bool:
        return self.status is SignalStatus.ACTIVE

    def extras(self) -> dict[str, Any]:
        """Opaque pass-through fields, untouched."""
        return dict(self.model_extra or {})


def resolve_symbol(base_asset: str, otc: bool) -> str:
    return f"{base_asset}-OTC" if otc else base_asset


class PollConfig(BaseModel):
    """
    The dashboard-owned knobs that parameterize the loop.
    Any change to the polling key restarts the timer.
    """
    model_config = ConfigDict(frozen=True)

    base_asset: str = "EURUSD"
    otc: bool = False
    timeframe: str = "1m"
    poll_interval_ms: int = 30000
    cooldown_ms: int = 60000

    @field_validator("base_asset")
    @classmethod
    def _known_asset(cls, v: str) -> str:
        v = v.upper()
        if v not in SPOT_ASSETS:
            raise ValueError(f"unknown asset {v!r}")
        return v

    @field_validator("timeframe")
    @classmethod
    def _known_timeframe(cls, v: str) -> str:
        if v not in TIMEFRAMES:
            raise ValueError(f"unsupported timeframe {v!r}")
        return v

    @field_validator("poll_interval_ms")
    @classmethod
    def _known_interval(cls, v: int) -> int:
        if v not in POLL_INTERVALS_MS:
            raise ValueError(f"unsupported poll interval {v}")
        return v

    @field_validator("cooldown_ms")
    @classmethod
    def _known_cooldown(cls, v: int) -> int:
        if v not in COOLDOWNS_MS:
            raise ValueError(f"unsupported cooldown {v}")
        return v

    @property
    def symbol(self) -> str:
        return resolve_symbol(self.base_asset, self.otc)

    def polling_key(self) -> tuple[str, bool, str, int]:
        return (self.base_asset, self.otc, self.timeframe, self.poll_interval_ms)


class Bar(BaseModel):
    time: int
    open: float
    high: float
    low: float
    close: float


class StatsOut(BaseModel):
    total_signals: int
    wins: int
    win_rate: float
    avg_confidence: float


class TrendOut(BaseModel):
    delta: float | None
    direction: str | None
    previous_price: float | None


class StateOut(BaseModel):
    """Everything the dashboard needs to render one refresh."""
    symbol: str
    signal: dict[str, Any] | None
    degraded: bool
    error: str | None
    stats: StatsOut
    trend: TrendOut
    last_cycle_at: datetime | None
    notifications_sent: int


class ConfigOut(BaseModel):
    config: PollConfig
    symbol: str
    telegram_chat_id: str
    telegram_token_set: bool
    choices: dict[str, list]


class ConfigUpdate(BaseModel):
    """Partial update from the dashboard; None means unchanged."""
    model_config = ConfigDict(extra="forbid")

    base_asset: str | None = None
    otc: bool | None = None
    timeframe: str | None = None
    poll_interval_ms: int | None = None
    cooldown_ms: int | None = None
    telegram_token: str | None = Field(default=None, min_length=1)
    telegram_chat_id: str | None = Field(default=None, min_length=1)

    @field_validator("telegram_token", "telegram_chat_id")
    @classmethod
    def _printable_credential(cls, v: str | None) -> str | None:
        if v is not None and (not v.isprintable() or any(ch.isspace() for ch in v)):
            raise ValueError("must not contain whitespace or control characters")
        return v


class NotifyResult(BaseModel):
    sent: bool
