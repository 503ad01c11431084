"""
Notification Dispatcher.

Concept: Cooldown Gate.
At most one alert attempt per cooldown window, no matter how often active
signals arrive. Signals inside the window are dropped, never queued.

The window is measured from the dispatch *attempt*: the timestamp is taken
before the network call, so a slow or failing send cannot open the gate for a
burst once it finally resolves.
"""
from __future__ import annotations

import logging
import time
from typing import Callable

from signal_desk.errors import NotificationDeliveryFailure
from signal_desk.schemas import PollConfig, Signal
from signal_desk.services.telegram import TelegramClient

log = logging.getLogger("core.dispatcher")


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def format_alert(direction: str, symbol: str, confidence: int, price: str, expire: str) -> str:
    return f"🚨 Signal: {direction} {symbol} | Conf: {confidence}% | Price: {price} | Exp: {expire}"


def format_signal_alert(signal: Signal, symbol: str) -> str:
    return format_alert(signal.direction.value, symbol, signal.confidence, signal.price, signal.expire)


class NotificationDispatcher:
    def __init__(
        self,
        telegram: TelegramClient,
        token: str,
        chat_id: str,
        clock: Callable[[], float] = monotonic_ms,
    ):
        self.telegram = telegram
        self.token = token
        self.chat_id = chat_id
        self.clock = clock
        # None means "never sent": the first eligible alert always goes out.
        self.last_sent_ms: float | None = None

    def update_credentials(self, token: str | None = None, chat_id: str | None = None) -> None:
        if token:
            self.token = token
        if chat_id:
            self.chat_id = chat_id

    def _claim_slot(self, cooldown_ms: int) -> bool:
        now = self.clock()
        if self.last_sent_ms is not None and now - self.last_sent_ms < cooldown_ms:
            return False
        self.last_sent_ms = now
        return True

    async def dispatch(self, signal: Signal, config: PollConfig) -> bool:
        """
        Send an alert for `signal` unless the cooldown is still running.
        Returns True only when the message was delivered.
        """
        return await self._send(format_signal_alert(signal, config.symbol), config)

    async def send_test(self, config: PollConfig) -> bool:
        """The settings panel's "Test Send": same gate, placeholder payload."""
        text = format_alert("TEST", config.symbol, 100, "0", config.timeframe)
        return await self._send(text, config)

    async def _send(self, text: str, config: PollConfig) -> bool:
        if not self._claim_slot(config.cooldown_ms):
            log.debug("alert for %s dropped: cooldown of %d ms not elapsed", config.symbol, config.cooldown_ms)
            return False

        try:
            await self.telegram.send_message(self.token, self.chat_id, text)
        except NotificationDeliveryFailure as e:
            # Dropped, not retried; the cooldown keeps counting from the attempt.
            log.error("telegram alert for %s not delivered: %s", config.symbol, e)
            return False

        log.info("telegram alert sent for %s", config.symbol)
        return True
