from __future__ import annotations
from dataclasses import dataclass
import os
from typing import Mapping
from dotenv import load_dotenv

from signal_desk.errors import ConfigError

load_dotenv()

DEFAULT_API_BASE = "https://premium-ai-signals-backend-y2m1.onrender.com"
TELEGRAM_API_BASE = "https://api.telegram.org"

# Choices offered to the dashboard. Anything outside these sets is rejected.
SPOT_ASSETS: tuple[str, ...] = (
    "EURUSD", "GBPUSD", "AUDUSD", "USDJPY", "EURGBP",
    "EURJPY", "GBPJPY", "AUDJPY", "USDCHF", "NZDUSD",
)
TIMEFRAMES: tuple[str, ...] = ("1m", "2m", "3m", "5m", "15m")
POLL_INTERVALS_MS: tuple[int, ...] = (30000, 60000, 120000, 180000)
COOLDOWNS_MS: tuple[int, ...] = (60000, 120000, 180000)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


# Boot-time values read from the environment; frozen once loaded.
# Runtime changes from the dashboard live in PollConfig, never here.
@dataclass(frozen=True)
class Settings:
    telegram_token: str
    telegram_chat_id: str

    # Resolved once at startup: env override, else the deployed backend.
    api_base: str = DEFAULT_API_BASE
    telegram_api_base: str = TELEGRAM_API_BASE

    base_asset: str = "EURUSD"
    otc: bool = False
    timeframe: str = "1m"
    poll_interval_ms: int = 30000
    cooldown_ms: int = 60000

    request_timeout_seconds: float = 15.0
    seed_bars: int = 100
    seed_price: float = 1.0850
    log_level: str = "INFO"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _parse_number(name: str, raw: str, kind: type):
    try:
        return kind(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a {kind.__name__}, got {raw!r}") from exc


def _require_choice(name: str, value, choices: tuple) -> None:
    if value not in choices:
        raise ConfigError(f"{name}={value!r} is not one of {list(choices)}")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from the environment (after .env has been loaded).

    The Telegram credentials have no defaults: a missing token or chat id is a
    startup error, not a silently disabled notifier.
    """
    env = os.environ if environ is None else environ

    # Now, we fetch the messaging credentials. Both are mandatory.
    token = (env.get("TELEGRAM_BOT_TOKEN") or "").strip()
    chat_id = (env.get("TELEGRAM_CHAT_ID") or "").strip()
    missing = [
        name
        for name, value in (("TELEGRAM_BOT_TOKEN", token), ("TELEGRAM_CHAT_ID", chat_id))
        if not value
    ]
    if missing:
        raise ConfigError(f"missing required configuration: {', '.join(missing)}")

    # Now, we resolve the backend base address. We strip the trailing slash
    # so path joining stays predictable.
    api_base = (env.get("SIGNALS_API_URL") or DEFAULT_API_BASE).strip().rstrip("/")
    telegram_api_base = (env.get("TELEGRAM_API_URL") or TELEGRAM_API_BASE).strip().rstrip("/")

    base_asset = env.get("BASE_ASSET", "EURUSD").strip().upper()
    timeframe = env.get("TIMEFRAME", "1m").strip()
    poll_interval_ms = _parse_number("POLL_INTERVAL_MS", env.get("POLL_INTERVAL_MS", "30000"), int)
    cooldown_ms = _parse_number("TELEGRAM_COOLDOWN_MS", env.get("TELEGRAM_COOLDOWN_MS", "60000"), int)

    _require_choice("BASE_ASSET", base_asset, SPOT_ASSETS)
    _require_choice("TIMEFRAME", timeframe, TIMEFRAMES)
    _require_choice("POLL_INTERVAL_MS", poll_interval_ms, POLL_INTERVALS_MS)
    _require_choice("TELEGRAM_COOLDOWN_MS", cooldown_ms, COOLDOWNS_MS)

    seed_bars = _parse_number("SEED_BARS", env.get("SEED_BARS", "100"), int)
    if seed_bars < 0:
        raise ConfigError("SEED_BARS must not be negative")

    return Settings(
        telegram_token=token,
        telegram_chat_id=chat_id,
        api_base=api_base,
        telegram_api_base=telegram_api_base,
        base_asset=base_asset,
        otc=_parse_bool("OTC_MODE", env.get("OTC_MODE", "false")),
        timeframe=timeframe,
        poll_interval_ms=poll_interval_ms,
        cooldown_ms=cooldown_ms,
        request_timeout_seconds=_parse_number(
            "REQUEST_TIMEOUT_SECONDS", env.get("REQUEST_TIMEOUT_SECONDS", "15"), float
        ),
        seed_bars=seed_bars,
        seed_price=_parse_number("SEED_PRICE", env.get("SEED_PRICE", "1.0850"), float),
        log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
