from __future__ import annotations

from fastapi import APIRouter, Depends

from signal_desk.routers.deps import get_desk
from signal_desk.runtime import SignalDesk
from signal_desk.schemas import NotifyResult

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.post("/test", response_model=NotifyResult)
async def send_test(desk: SignalDesk = Depends(get_desk)):
    # Goes through the same cooldown as real alerts.
    sent = await desk.dispatcher.send_test(desk.config)
    return NotifyResult(sent=sent)
