from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .config import Settings
from .feed import LiveFeed
from .formatting import alert_time_iso, build_tx_link, format_alert_text, token_label
from .render import render_alert_image
from .types import Alert, TransferEvent

logger = logging.getLogger(__name__)

Renderer = Callable[[float | None, str | None, str | None, str], bytes]


class SocialPoster(Protocol):
    async def send_photo(self, text: str, image: bytes) -> str: ...

    async def send_message(self, text: str) -> str: ...


@dataclass
class DeliveryStats:
    feed_published: int = 0
    images_rendered: int = 0
    posts_sent: int = 0
    delivery_failures: int = 0


class AlertPublisher:
    def __init__(
        self,
        settings: Settings,
        feed: LiveFeed | None = None,
        renderer: Renderer | None = render_alert_image,
        poster: SocialPoster | None = None,
    ) -> None:
        self.settings = settings
        self.feed = feed
        self.renderer = renderer
        self.poster = poster
        self.stats = DeliveryStats()
        self.current: Alert | None = None
        self.latest_image: bytes | None = None
        self._seq = itertools.count(1)

    def create_alert(self, event: TransferEvent, now_ms: int) -> Alert:
        label = token_label(event.mint, self.settings.target_mint, self.settings.token_symbol)
        alert = Alert(
            alert_id=f"{now_ms}-{next(self._seq)}",
            signature=event.signature,
            created_at_ms=now_ms,
            text=format_alert_text(event, label),
            tx_url=build_tx_link(self.settings.explorer_tx_base, event.signature),
            amount=event.amount,
            mint=event.mint,
            buyer=event.buyer,
        )
        self.current = alert
        return alert

    async def deliver(self, alert: Alert) -> None:
        if self.feed is not None:
            try:
                self.feed.publish(alert)
                self.stats.feed_published += 1
            except Exception as exc:
                self.stats.delivery_failures += 1
                logger.exception("Live feed publish failed for alert %s: %s", alert.alert_id, exc)

        image = await self._render(alert)
        await self._post(alert, image)

    async def _render(self, alert: Alert) -> bytes | None:
        if self.renderer is None:
            return None

        label = token_label(alert.mint, self.settings.target_mint, self.settings.token_symbol)
        try:
            image = await asyncio.to_thread(
                self.renderer, alert.amount, alert.mint, alert.signature, label
            )
        except Exception as exc:
            self.stats.delivery_failures += 1
            logger.exception("Image render failed for alert %s: %s", alert.alert_id, exc)
            return None

        self.stats.images_rendered += 1
        # A slower render of an older alert must not replace the newer image.
        if self.current is not None and self.current.alert_id == alert.alert_id:
            self.latest_image = image
        return image

    async def _post(self, alert: Alert, image: bytes | None) -> None:
        if self.poster is None:
            return

        try:
            if image is not None:
                post_id = await self.poster.send_photo(alert.text, image)
            else:
                post_id = await self.poster.send_message(alert.text)
        except Exception as exc:
            self.stats.delivery_failures += 1
            logger.exception("Social post failed for alert %s: %s", alert.alert_id, exc)
            return

        self.stats.posts_sent += 1
        logger.info(
            "Alert posted alert_id=%s signature=%s created_at=%s post_id=%s",
            alert.alert_id,
            alert.signature,
            alert_time_iso(alert.created_at_ms),
            post_id,
        )
