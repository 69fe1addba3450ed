from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class TransferEvent:
    signature: str | None
    kind: str
    description: str | None
    mint: str | None
    amount: float | None
    buyer: str | None = None
    native_amount: float | None = None


@dataclass(frozen=True)
class Alert:
    alert_id: str
    signature: str | None
    created_at_ms: int
    text: str
    tx_url: str | None
    amount: float | None
    mint: str | None
    buyer: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class IngestResult:
    received: int = 0
    accepted: int = 0
    triggered: int = 0
    duplicates: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
