from __future__ import annotations

from datetime import datetime, timezone

from .types import TransferEvent


def short_address(address: str | None) -> str:
    if not address:
        return "Unknown"
    addr = address.strip()
    if len(addr) <= 12:
        return addr
    return f"{addr[:4]}...{addr[-4:]}"


def format_amount(amount: float | None) -> str:
    if amount is None:
        return "?"
    text = f"{amount:,.2f}"
    return text.rstrip("0").rstrip(".")


def alert_time_iso(ts_ms: int) -> str:
    dt = datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="seconds").replace("+00:00", "Z")


def token_label(mint: str | None, target_mint: str | None, symbol: str) -> str:
    # Without a target mint any token can match, so the symbol would be wrong.
    if target_mint is None and mint:
        return short_address(mint)
    return symbol


def build_tx_link(base_url: str, signature: str | None) -> str | None:
    if not signature:
        return None
    return f"{base_url.rstrip('/')}/{signature}"


def format_alert_text(event: TransferEvent, label: str) -> str:
    lines = [f"🟢 NEW BUY: {format_amount(event.amount)} {label}"]
    if event.buyer:
        lines.append(f"👤 Buyer: {short_address(event.buyer)}")
    if event.native_amount is not None:
        lines.append(f"◎ Spent: {format_amount(event.native_amount)} SOL")
    return "\n".join(lines)
