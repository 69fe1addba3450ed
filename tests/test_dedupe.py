from buy_alert_bot.dedupe import SignatureDeduper


def test_record_then_seen() -> None:
    d = SignatureDeduper(max_size=10)
    assert d.seen("a") is False
    d.record("a")
    assert d.seen("a") is True


def test_record_is_idempotent() -> None:
    d = SignatureDeduper(max_size=10)
    d.record("a")
    d.record("a")
    assert len(d) == 1


def test_missing_signature_never_deduped() -> None:
    d = SignatureDeduper(max_size=10)
    d.record(None)
    d.record("")
    assert len(d) == 0
    assert d.seen(None) is False
    assert d.seen("") is False


def test_size_stays_bounded_and_keeps_recent_entries() -> None:
    d = SignatureDeduper(max_size=100, keep_fraction=0.5)
    for i in range(1000):
        d.record(f"sig-{i}")
        assert len(d) <= 100

    assert d.seen("sig-999") is True
    assert d.seen("sig-950") is True
    assert d.seen("sig-0") is False


def test_eviction_drops_to_keep_fraction() -> None:
    d = SignatureDeduper(max_size=10, keep_fraction=0.5)
    for i in range(11):
        d.record(str(i))
    assert len(d) == 5
    assert d.seen("10") is True
    assert d.seen("5") is False
