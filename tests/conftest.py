"""Shared pytest fixtures and fakes for the signal loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import numpy as np
import pytest
from apscheduler.jobstores.base import JobLookupError

from signal_desk.config import Settings
from signal_desk.core.aggregator import SignalStateAggregator
from signal_desk.core.dispatcher import NotificationDispatcher
from signal_desk.core.pipeline import SignalPipeline
from signal_desk.core.synthetic import SyntheticGenerator
from signal_desk.errors import NotificationDeliveryFailure, SourceUnavailable
from signal_desk.schemas import PollConfig, Signal


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingTelegram:
    """Stands in for TelegramClient; records every send attempt."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str, str]] = []
        self.gate: asyncio.Event | None = None

    async def send_message(self, token: str, chat_id: str, text: str) -> None:
        self.sent.append((token, chat_id, text))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise NotificationDeliveryFailure("telegram rejected message: Unauthorized")

    async def aclose(self) -> None:
        return None


class ScriptedSource:
    """Returns (or raises) the queued outcomes in order."""

    def __init__(self, outcomes: list[Signal | Exception] | None = None):
        self.outcomes = list(outcomes or [])
        self.calls: list[tuple[str, bool, str]] = []
        self.before_return: Callable[[], None] | None = None

    async def fetch(self, base_asset: str, otc: bool, timeframe: str) -> Signal:
        self.calls.append((base_asset, otc, timeframe))
        outcome = self.outcomes.pop(0) if self.outcomes else SourceUnavailable("offline")
        if self.before_return is not None:
            self.before_return()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        return None


class FakeAPScheduler:
    """Records the calls PollingScheduler makes on AsyncIOScheduler."""

    def __init__(self):
        self.started = 0
        self.shut_down = 0
        self.jobs: dict[str, dict[str, Any]] = {}
        self.added: list[dict[str, Any]] = []
        self.removed: list[str] = []

    def start(self) -> None:
        self.started += 1

    def add_job(self, func, trigger, **kwargs) -> None:
        job = {"func": func, "trigger": trigger, **kwargs}
        self.jobs[kwargs["id"]] = job
        self.added.append(job)

    def remove_job(self, job_id: str) -> None:
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]
        self.removed.append(job_id)

    def shutdown(self, wait: bool = True) -> None:
        self.shut_down += 1


def make_signal(**overrides: Any) -> Signal:
    payload: dict[str, Any] = {
        "status": "active",
        "direction": "CALL",
        "confidence": 88,
        "price": "1.08550",
        "expire": "1m",
    }
    payload.update(overrides)
    return Signal.model_validate(payload)


@pytest.fixture
def signal_factory() -> Callable[..., Signal]:
    return make_signal


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_token="123:test-token",
        telegram_chat_id="4242",
        api_base="http://signals.test",
        telegram_api_base="http://telegram.test",
        seed_bars=10,
    )


@pytest.fixture
def poll_config() -> PollConfig:
    return PollConfig(poll_interval_ms=30000, cooldown_ms=60000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def telegram() -> RecordingTelegram:
    return RecordingTelegram()


@pytest.fixture
def generator() -> SyntheticGenerator:
    return SyntheticGenerator(np.random.default_rng(7))


@pytest.fixture
def dispatcher(telegram: RecordingTelegram, clock: FakeClock) -> NotificationDispatcher:
    return NotificationDispatcher(telegram, "123:test-token", "4242", clock=clock)


@pytest.fixture
def source() -> ScriptedSource:
    return ScriptedSource()


@pytest.fixture
def pipeline(
    source: ScriptedSource,
    generator: SyntheticGenerator,
    dispatcher: NotificationDispatcher,
) -> SignalPipeline:
    return SignalPipeline(
        source=source,
        generator=generator,
        aggregator=SignalStateAggregator(),
        dispatcher=dispatcher,
    )


@pytest.fixture
def fake_apscheduler() -> FakeAPScheduler:
    return FakeAPScheduler()
