from __future__ import annotations

import asyncio
import math

import httpx
import pytest

from signal_desk.core.dispatcher import NotificationDispatcher, format_signal_alert
from signal_desk.schemas import PollConfig
from signal_desk.services.telegram import TelegramClient

from conftest import FakeClock, RecordingTelegram


def test_alert_text_layout(signal_factory):
    sig = signal_factory(direction="PUT", confidence=84, price="1.08577", expire="2m")
    assert format_signal_alert(sig, "EURUSD-OTC") == (
        "🚨 Signal: PUT EURUSD-OTC | Conf: 84% | Price: 1.08577 | Exp: 2m"
    )


@pytest.mark.asyncio
async def test_first_alert_goes_out_with_credentials(dispatcher, telegram, clock, signal_factory):
    config = PollConfig(otc=True)
    assert await dispatcher.dispatch(signal_factory(), config) is True

    token, chat_id, text = telegram.sent[0]
    assert token == "123:test-token"
    assert chat_id == "4242"
    assert "EURUSD-OTC" in text
    assert dispatcher.last_sent_ms == clock.now


@pytest.mark.asyncio
async def test_inside_cooldown_is_dropped_not_queued(dispatcher, telegram, clock, signal_factory, poll_config):
    await dispatcher.dispatch(signal_factory(), poll_config)
    clock.advance(poll_config.cooldown_ms - 1)
    assert await dispatcher.dispatch(signal_factory(), poll_config) is False

    clock.advance(1)
    assert await dispatcher.dispatch(signal_factory(), poll_config) is True
    assert len(telegram.sent) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("cooldown", [60000, 120000, 180000])
@pytest.mark.parametrize("spacing", [1000, 15000, 59999])
async def test_send_count_bounded_by_cooldown(cooldown, spacing, signal_factory):
    clock = FakeClock(0.0)
    telegram = RecordingTelegram()
    dispatcher = NotificationDispatcher(telegram, "t", "c", clock=clock)
    config = PollConfig(cooldown_ms=cooldown)

    for _ in range(60):
        await dispatcher.dispatch(signal_factory(), config)
        clock.advance(spacing)

    elapsed = spacing * 59
    assert len(telegram.sent) <= math.floor(elapsed / cooldown) + 1


@pytest.mark.asyncio
async def test_timestamp_is_taken_before_the_send_completes(dispatcher, telegram, clock, signal_factory, poll_config):
    telegram.gate = asyncio.Event()
    slow = asyncio.create_task(dispatcher.dispatch(signal_factory(), poll_config))
    await asyncio.sleep(0)

    # The first send is still hanging, yet the gate is already closed.
    assert dispatcher.last_sent_ms == clock.now
    clock.advance(5000)
    assert await dispatcher.dispatch(signal_factory(), poll_config) is False

    telegram.gate.set()
    assert await slow is True
    assert len(telegram.sent) == 1


@pytest.mark.asyncio
async def test_delivery_failure_is_swallowed_and_keeps_cooldown(clock, signal_factory, poll_config):
    telegram = RecordingTelegram(fail=True)
    dispatcher = NotificationDispatcher(telegram, "t", "c", clock=clock)

    assert await dispatcher.dispatch(signal_factory(), poll_config) is False
    attempt_at = dispatcher.last_sent_ms
    assert attempt_at == clock.now

    clock.advance(1000)
    assert await dispatcher.dispatch(signal_factory(), poll_config) is False
    # No retry, and the window still counts from the failed attempt.
    assert len(telegram.sent) == 1
    assert dispatcher.last_sent_ms == attempt_at


@pytest.mark.asyncio
async def test_test_send_uses_placeholder_and_same_gate(dispatcher, telegram, signal_factory):
    config = PollConfig(timeframe="15m")
    assert await dispatcher.send_test(config) is True
    assert telegram.sent[0][2] == "🚨 Signal: TEST EURUSD | Conf: 100% | Price: 0 | Exp: 15m"

    assert await dispatcher.dispatch(signal_factory(), config) is False


def test_update_credentials_ignores_empty_values(dispatcher):
    dispatcher.update_credentials(token="999:new", chat_id=None)
    assert dispatcher.token == "999:new"
    assert dispatcher.chat_id == "4242"


@pytest.mark.asyncio
async def test_unusable_token_is_logged_and_dropped(clock, signal_factory, poll_config):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    telegram = TelegramClient("http://telegram.test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    dispatcher = NotificationDispatcher(telegram, "123:abc\n", "4242", clock=clock)

    assert await dispatcher.dispatch(signal_factory(), poll_config) is False
    assert seen == []
    assert dispatcher.last_sent_ms == clock.now
