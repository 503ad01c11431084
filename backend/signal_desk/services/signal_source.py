"""
Signal backend adapter.

A single GET per poll. Every failure mode (transport, HTTP status, body) is
reported as SourceUnavailable; the next scheduled poll is the only retry.
"""
from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from signal_desk.errors import SourceUnavailable
from signal_desk.schemas import Signal, resolve_symbol

log = logging.getLogger("services.signal_source")


class SignalSourceAdapter:
    """
    Async adapter for the remote signal service.
    Design Pattern: Adapter / Wrapper.
    The rest of the app only ever sees a validated Signal or SourceUnavailable.
    """
    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        self.base_url = base_url.rstrip("/")
        # Now, we either borrow the caller's client (tests inject a MockTransport)
        # or own one for the lifetime of the adapter.
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self, base_asset: str, otc: bool, timeframe: str) -> Signal:
        symbol = resolve_symbol(base_asset, otc)
        url = f"{self.base_url}/signals/{symbol}"
        params = {"otc": "true" if otc else "false", "timeframe": timeframe}

        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            raise SourceUnavailable(f"signal backend returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"signal backend unreachable: {e!r}") from e
        except ValueError as e:
            # resp.json() raises a ValueError subclass on a non-JSON body.
            raise SourceUnavailable("signal backend returned a non-JSON body") from e

        # Now, we validate the response shape.
        # External APIs are unpredictable; a body that is not a Signal is an outage too.
        if not isinstance(body, dict):
            raise SourceUnavailable(f"unexpected signal payload type {type(body).__name__}")
        try:
            signal = Signal.model_validate(body)
        except ValidationError as e:
            raise SourceUnavailable(f"malformed signal payload: {e.error_count()} error(s)") from e

        log.debug("fetched %s signal for %s (%s)", signal.status.value, symbol, timeframe)
        return signal

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
