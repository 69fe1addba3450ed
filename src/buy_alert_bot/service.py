from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .config import Settings
from .cooldown import CooldownGate
from .dedupe import SignatureDeduper
from .feed import LiveFeed
from .filters import FilterRules
from .normalizer import normalize_payload
from .publisher import AlertPublisher, Renderer, SocialPoster
from .render import render_alert_image
from .telegram_notifier import TelegramNotifier
from .types import Alert, IngestResult

logger = logging.getLogger(__name__)


@dataclass
class Metrics:
    batches: int = 0
    items_received: int = 0
    items_filtered: int = 0
    items_accepted: int = 0
    duplicates: int = 0
    cooldown_blocked: int = 0
    alerts_triggered: int = 0
    items_skipped: int = 0


@dataclass
class TriageState:
    """Everything concurrent requests share, guarded by ``lock``."""

    deduper: SignatureDeduper
    gate: CooldownGate
    publisher: AlertPublisher
    lock: threading.Lock = field(default_factory=threading.Lock)


class AlertService:
    def __init__(
        self,
        settings: Settings,
        clock: Callable[[], float] = time.time,
        feed: LiveFeed | None = None,
        renderer: Renderer | None = render_alert_image,
        poster: SocialPoster | None = None,
    ) -> None:
        self.settings = settings
        self.clock = clock
        self.metrics = Metrics()
        self.rules = FilterRules(
            target_mint=settings.target_mint,
            min_amount=settings.min_amount,
            strict=settings.strict_mint_filter,
            target_wallet=settings.target_wallet,
        )
        self.feed = feed if feed is not None else LiveFeed()
        self.notifier: TelegramNotifier | None = None
        if poster is None and settings.telegram_enabled:
            self.notifier = TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
            poster = self.notifier

        self.state = TriageState(
            deduper=SignatureDeduper(settings.dedup_max_signatures, settings.dedup_keep_fraction),
            gate=CooldownGate(int(settings.alert_cooldown_seconds * 1000)),
            publisher=AlertPublisher(settings, feed=self.feed, renderer=renderer, poster=poster),
        )
        self._deliveries: set[asyncio.Task[None]] = set()
        self._health_task: asyncio.Task[None] | None = None

    @property
    def publisher(self) -> AlertPublisher:
        return self.state.publisher

    @property
    def current_alert(self) -> Alert | None:
        return self.state.publisher.current

    @property
    def latest_image(self) -> bytes | None:
        return self.state.publisher.latest_image

    def start(self) -> None:
        if self._health_task is None:
            self._health_task = asyncio.create_task(self._health_loop())

    async def close(self) -> None:
        if self._health_task is not None:
            self._health_task.cancel()
            await asyncio.gather(self._health_task, return_exceptions=True)
            self._health_task = None
        await self.drain()
        if self.notifier is not None:
            await self.notifier.close()

    async def drain(self) -> None:
        """Wait for in-flight deliveries to finish."""
        while self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    async def ingest(self, body: Any) -> IngestResult:
        items = body if isinstance(body, list) else [body]
        result = IngestResult(received=len(items))
        self.metrics.batches += 1
        self.metrics.items_received += len(items)

        for index, item in enumerate(items):
            try:
                alert = self._triage(item, result)
            except Exception as exc:
                result.skipped += 1
                logger.exception("Failed to triage item %d: %s", index, exc)
                continue
            if alert is not None:
                self._schedule_delivery(alert)

        self.metrics.items_accepted += result.accepted
        self.metrics.alerts_triggered += result.triggered
        self.metrics.duplicates += result.duplicates
        self.metrics.items_skipped += result.skipped
        return result

    def _triage(self, item: Any, result: IngestResult) -> Alert | None:
        if not isinstance(item, dict):
            result.skipped += 1
            logger.debug("Skipping non-object webhook item of type %s", type(item).__name__)
            return None

        event = normalize_payload(
            item,
            target_mint=self.settings.target_mint,
            min_amount=self.settings.min_amount,
            target_wallet=self.settings.target_wallet,
        )
        reason = self.rules.rejection_reason(event)
        if reason is not None:
            self.metrics.items_filtered += 1
            logger.debug("Rejected signature=%s reason=%s", event.signature, reason)
            return None

        state = self.state
        with state.lock:
            if state.deduper.seen(event.signature):
                result.duplicates += 1
                logger.debug("Duplicate signature=%s", event.signature)
                return None

            result.accepted += 1
            now_ms = int(self.clock() * 1000)
            if not state.gate.try_acquire(now_ms):
                self.metrics.cooldown_blocked += 1
                logger.info("Cooldown active; not alerting signature=%s", event.signature)
                return None

            state.deduper.record(event.signature)
            alert = state.publisher.create_alert(event, now_ms)
            result.triggered += 1

        logger.info(
            "Alert triggered alert_id=%s signature=%s amount=%s mint=%s",
            alert.alert_id,
            alert.signature,
            alert.amount,
            alert.mint,
        )
        return alert

    def _schedule_delivery(self, alert: Alert) -> None:
        task = asyncio.create_task(self.state.publisher.deliver(alert))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.health_log_interval_seconds)
            stats = self.state.publisher.stats
            logger.info(
                (
                    "health batches=%d received=%d filtered=%d accepted=%d duplicates=%d "
                    "cooldown_blocked=%d triggered=%d skipped=%d dedup_size=%d "
                    "posts_sent=%d delivery_failures=%d subscribers=%d"
                ),
                self.metrics.batches,
                self.metrics.items_received,
                self.metrics.items_filtered,
                self.metrics.items_accepted,
                self.metrics.duplicates,
                self.metrics.cooldown_blocked,
                self.metrics.alerts_triggered,
                self.metrics.items_skipped,
                len(self.state.deduper),
                stats.posts_sent,
                stats.delivery_failures,
                len(self.feed),
            )
