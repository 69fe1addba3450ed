import asyncio
from dataclasses import replace

from buy_alert_bot.config import Settings
from buy_alert_bot.service import AlertService


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class DummyPoster:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.posts = []

    async def send_photo(self, text: str, image: bytes) -> str:
        if self.fail:
            raise RuntimeError("telegram down")
        self.posts.append(text)
        return str(len(self.posts))

    async def send_message(self, text: str) -> str:
        return await self.send_photo(text, b"")


def _settings(**overrides) -> Settings:
    settings = Settings(
        target_mint="NC",
        min_amount=100,
        strict_mint_filter=False,
        target_wallet=None,
        alert_cooldown_seconds=20,
        dedup_max_signatures=5000,
        dedup_keep_fraction=0.5,
        webhook_secret=None,
        webhook_secret_header="Authorization",
        telegram_bot_token=None,
        telegram_chat_id=None,
        token_symbol="NC",
        explorer_tx_base="https://solscan.io/tx",
        host="127.0.0.1",
        port=3000,
        log_level="INFO",
        health_log_interval_seconds=1000,
        max_body_bytes=1024 * 1024,
        public_dir=None,
        assets_dir=None,
    )
    return replace(settings, **overrides)


def _payload(signature: str, amount: float, mint: str = "NC") -> dict:
    return {"signature": signature, "tokenTransfers": [{"mint": mint, "tokenAmount": amount}]}


def test_end_to_end_dedup_and_cooldown() -> None:
    async def scenario() -> None:
        clock = FakeClock(1_000.0)
        service = AlertService(_settings(), clock=clock, renderer=None)

        first = await service.ingest(_payload("sigA", 500))
        assert first.triggered == 1
        assert service.current_alert.amount == 500
        assert service.current_alert.signature == "sigA"

        clock.now = 1_005.0
        repeat = await service.ingest(_payload("sigA", 500))
        assert repeat.triggered == 0
        assert repeat.duplicates == 1

        blocked = await service.ingest(_payload("sigB", 600))
        assert blocked.accepted == 1
        assert blocked.triggered == 0
        assert service.current_alert.signature == "sigA"

        clock.now = 1_025.0
        later = await service.ingest(_payload("sigB", 600))
        assert later.triggered == 1
        assert service.current_alert.signature == "sigB"
        assert service.current_alert.amount == 600

        await service.drain()

    asyncio.run(scenario())


def test_batch_skips_malformed_item_and_keeps_going() -> None:
    async def scenario() -> None:
        service = AlertService(_settings(alert_cooldown_seconds=0), clock=FakeClock(), renderer=None)
        result = await service.ingest([_payload("sig1", 500), "garbage", _payload("sig3", 700)])

        assert result.received == 3
        assert result.skipped == 1
        assert result.accepted == 2
        assert result.triggered == 2
        assert service.current_alert.signature == "sig3"
        await service.drain()

    asyncio.run(scenario())


def test_cooldown_applies_within_one_batch() -> None:
    async def scenario() -> None:
        service = AlertService(_settings(), clock=FakeClock(), renderer=None)
        result = await service.ingest([_payload("sig1", 500), _payload("sig2", 700)])

        assert result.accepted == 2
        assert result.triggered == 1
        assert service.current_alert.signature == "sig1"
        await service.drain()

    asyncio.run(scenario())


def test_strict_filtering_rejects_small_and_foreign_transfers() -> None:
    async def scenario() -> None:
        service = AlertService(
            _settings(alert_cooldown_seconds=0, strict_mint_filter=True),
            clock=FakeClock(),
            renderer=None,
        )
        result = await service.ingest(
            [
                _payload("small", 99),
                _payload("other", 10_000, mint="XYZ"),
                _payload("exact", 100),
            ]
        )
        assert result.accepted == 1
        assert result.triggered == 1
        assert service.current_alert.signature == "exact"
        assert service.metrics.items_filtered == 2
        await service.drain()

    asyncio.run(scenario())


def test_strict_mode_drops_events_without_matching_transfer() -> None:
    async def scenario() -> None:
        service = AlertService(
            _settings(strict_mint_filter=True, alert_cooldown_seconds=0),
            clock=FakeClock(),
            renderer=None,
        )
        result = await service.ingest(_payload("other", 10_000, mint="XYZ"))
        assert result.accepted == 0
        assert service.current_alert is None

        lenient = AlertService(_settings(alert_cooldown_seconds=0), clock=FakeClock(), renderer=None)
        result = await lenient.ingest(_payload("other", 10_000, mint="XYZ"))
        assert result.accepted == 1
        assert lenient.current_alert.amount is None
        await lenient.drain()

    asyncio.run(scenario())


def test_unsigned_events_are_never_treated_as_duplicates() -> None:
    async def scenario() -> None:
        service = AlertService(_settings(alert_cooldown_seconds=0), clock=FakeClock(), renderer=None)
        item = {"tokenTransfers": [{"mint": "NC", "tokenAmount": 500}]}
        result = await service.ingest([item, item])
        assert result.duplicates == 0
        assert result.triggered == 2
        assert len(service.state.deduper) == 0
        await service.drain()

    asyncio.run(scenario())


def test_delivery_failure_keeps_dedup_and_cooldown_state() -> None:
    async def scenario() -> None:
        clock = FakeClock()
        poster = DummyPoster(fail=True)
        service = AlertService(_settings(), clock=clock, renderer=None, poster=poster)

        result = await service.ingest(_payload("sigA", 500))
        await service.drain()
        assert result.triggered == 1
        assert service.publisher.stats.delivery_failures == 1

        clock.now += 60
        again = await service.ingest(_payload("sigA", 500))
        assert again.duplicates == 1
        assert again.triggered == 0
        assert service.state.gate.last_accepted_at == 1_000_000

    asyncio.run(scenario())


def test_delivery_renders_image_and_posts() -> None:
    async def scenario() -> None:
        poster = DummyPoster()
        service = AlertService(_settings(), clock=FakeClock(), poster=poster)

        await service.ingest(_payload("sigA", 500))
        await service.drain()

        assert service.latest_image.startswith(b"\x89PNG")
        assert poster.posts == [service.current_alert.text]

    asyncio.run(scenario())


def test_concurrent_batches_trigger_once_under_cooldown() -> None:
    async def scenario() -> None:
        service = AlertService(_settings(), clock=FakeClock(), renderer=None)
        results = await asyncio.gather(
            *(service.ingest(_payload(f"sig{i}", 500)) for i in range(20))
        )
        assert sum(r.triggered for r in results) == 1
        assert sum(r.accepted for r in results) == 20
        await service.drain()

    asyncio.run(scenario())
