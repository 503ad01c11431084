from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from signal_desk.core.synthetic import MAX_BARS
from signal_desk.routers.deps import get_desk
from signal_desk.runtime import SignalDesk
from signal_desk.schemas import Bar, StateOut, StatsOut, TrendOut

router = APIRouter(prefix="/api/v1", tags=["state"])


@router.get("/state", response_model=StateOut)
def read_state(desk: SignalDesk = Depends(get_desk)):
    state = desk.pipeline.state
    stats = desk.pipeline.aggregator.stats()
    trend = desk.pipeline.aggregator.trend()
    return StateOut(
        symbol=desk.config.symbol,
        signal=state.signal.model_dump(mode="json") if state.signal is not None else None,
        degraded=state.degraded,
        error=state.error,
        stats=StatsOut(
            total_signals=stats.total_signals,
            wins=stats.wins,
            win_rate=stats.win_rate,
            avg_confidence=stats.avg_confidence,
        ),
        trend=TrendOut(
            delta=trend.delta,
            direction=trend.direction,
            previous_price=trend.previous_price,
        ),
        last_cycle_at=state.last_cycle_at,
        notifications_sent=state.notifications_sent,
    )


@router.get("/chart", response_model=list[Bar])
def read_chart(
    limit: int = Query(500, ge=1, le=MAX_BARS),
    desk: SignalDesk = Depends(get_desk),
):
    bars = desk.pipeline.state.bars
    return [
        Bar(time=int(row.time), open=row.open, high=row.high, low=row.low, close=row.close)
        for row in bars.tail(limit).itertuples(index=False)
    ]


@router.get("/signal/ticket")
def read_ticket(desk: SignalDesk = Depends(get_desk)):
    """Clipboard text for placing the current signal by hand on the broker."""
    signal = desk.pipeline.state.signal
    if signal is None:
        raise HTTPException(status_code=404, detail="no signal yet")
    text = (
        f"{signal.direction.value} {desk.config.symbol} {signal.expire} "
        f"@ {signal.price} (Conf: {signal.confidence}%)"
    )
    return {"text": text}
