from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from signal_desk.config import COOLDOWNS_MS, POLL_INTERVALS_MS, SPOT_ASSETS, TIMEFRAMES
from signal_desk.errors import ConfigError
from signal_desk.routers.deps import get_desk
from signal_desk.runtime import SignalDesk
from signal_desk.schemas import ConfigOut, ConfigUpdate

router = APIRouter(prefix="/api/v1/config", tags=["config"])

CHOICES = {
    "assets": list(SPOT_ASSETS),
    "timeframes": list(TIMEFRAMES),
    "poll_intervals_ms": list(POLL_INTERVALS_MS),
    "cooldowns_ms": list(COOLDOWNS_MS),
}


def _config_out(desk: SignalDesk) -> ConfigOut:
    # The token itself is never echoed back.
    return ConfigOut(
        config=desk.config,
        symbol=desk.config.symbol,
        telegram_chat_id=desk.dispatcher.chat_id,
        telegram_token_set=bool(desk.dispatcher.token),
        choices=CHOICES,
    )


@router.get("", response_model=ConfigOut)
def read_config(desk: SignalDesk = Depends(get_desk)):
    return _config_out(desk)


@router.put("", response_model=ConfigOut)
def update_config(update: ConfigUpdate, desk: SignalDesk = Depends(get_desk)):
    try:
        desk.update_config(update)
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return _config_out(desk)
