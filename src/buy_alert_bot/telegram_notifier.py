from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Posts alerts to a Telegram chat. One attempt per call, no retries."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.chat_id = chat_id
        self._base = f"https://api.telegram.org/bot{bot_token}"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def send_photo(self, text: str, image: bytes) -> str:
        response = await self._client.post(
            f"{self._base}/sendPhoto",
            data={"chat_id": self.chat_id, "caption": text},
            files={"photo": ("alert.png", image, "image/png")},
        )
        return self._message_id(response)

    async def send_message(self, text: str) -> str:
        response = await self._client.post(
            f"{self._base}/sendMessage",
            json={
                "chat_id": self.chat_id,
                "text": text,
                "disable_web_page_preview": True,
            },
        )
        return self._message_id(response)

    @staticmethod
    def _message_id(response: httpx.Response) -> str:
        if response.status_code == 429:
            logger.warning("Telegram rate limited; alert post dropped")
        response.raise_for_status()
        data: Any = response.json()
        if not isinstance(data, dict) or not data.get("ok", False):
            raise RuntimeError(f"Telegram send failed: {data}")
        result = data.get("result") or {}
        return str(result.get("message_id", ""))
