from __future__ import annotations

from fastapi import HTTPException, Request

from signal_desk.runtime import SignalDesk


def get_desk(request: Request) -> SignalDesk:
    desk = getattr(request.app.state, "desk", None)
    if desk is None:
        raise HTTPException(status_code=503, detail="signal loop not started")
    return desk
