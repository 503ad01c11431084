from __future__ import annotations

import logging

import httpx

from signal_desk.config import TELEGRAM_API_BASE
from signal_desk.errors import NotificationDeliveryFailure

log = logging.getLogger("services.telegram")


class TelegramClient:
    """
    Minimal Bot API client: sendMessage only.
    Compliance Note: the bot token is part of the URL path, so URLs from this
    client are never logged.
    """
    def __init__(
        self,
        api_base: str = TELEGRAM_API_BASE,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        self.api_base = api_base.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send_message(self, token: str, chat_id: str, text: str) -> None:
        url = f"{self.api_base}/bot{token}/sendMessage"
        try:
            resp = await self._client.post(url, json={"chat_id": chat_id, "text": text})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            # Telegram answers 401 for a bad token, 400 for a bad chat, 429 when throttled.
            raise NotificationDeliveryFailure(
                f"telegram sendMessage failed with status {e.response.status_code}"
            ) from None
        except httpx.HTTPError as e:
            raise NotificationDeliveryFailure(
                f"telegram unreachable: {type(e).__name__}"
            ) from None
        except httpx.InvalidURL:
            # Not an HTTPError: a token with control characters never forms a URL.
            raise NotificationDeliveryFailure("telegram bot token does not form a valid URL") from None

        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("ok") is False:
            raise NotificationDeliveryFailure(
                f"telegram rejected message: {body.get('description', 'unknown error')}"
            )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
