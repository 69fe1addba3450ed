from __future__ import annotations

import math
from typing import Any

from .types import TransferEvent

LAMPORTS_PER_SOL = 1_000_000_000
MAX_DECIMALS = 30


def normalize_payload(
    item: dict[str, Any],
    target_mint: str | None = None,
    min_amount: float | None = None,
    target_wallet: str | None = None,
) -> TransferEvent:
    signature = _first_string(item, "signature", "transactionSignature", "txSignature", "tx_hash")
    if signature is None:
        signature = _nested_signature(item.get("transaction"))

    kind = _first_string(item, "type", "kind", "transactionType") or "UNKNOWN"
    description = _first_string(item, "description", "memo")

    mint: str | None = None
    amount: float | None = None
    buyer: str | None = None

    for transfer in _token_transfers(item):
        candidate_mint = _first_string(transfer, "mint", "tokenMint", "token_address")
        candidate_amount = _transfer_amount(transfer)
        candidate_buyer = _first_string(transfer, "toUserAccount", "to")

        # Transfers without a mint are never attributed, even with no target mint.
        if candidate_mint is None:
            continue
        if candidate_amount is None or candidate_amount <= 0:
            continue
        if target_mint and candidate_mint != target_mint:
            continue
        if min_amount is not None and candidate_amount < min_amount:
            continue
        if target_wallet and candidate_buyer != target_wallet:
            continue

        mint = candidate_mint
        amount = candidate_amount
        buyer = candidate_buyer
        break

    return TransferEvent(
        signature=signature,
        kind=kind,
        description=description,
        mint=mint,
        amount=amount,
        buyer=buyer,
        native_amount=_native_spent(item, buyer),
    )


def _token_transfers(item: dict[str, Any]) -> list[dict[str, Any]]:
    raw = item.get("tokenTransfers")
    if raw is None:
        raw = item.get("token_transfers")
    if not isinstance(raw, list):
        return []
    return [t for t in raw if isinstance(t, dict)]


def _transfer_amount(transfer: dict[str, Any]) -> float | None:
    for key in ("tokenAmount", "amount"):
        if key in transfer:
            value = _to_float(transfer[key])
            if value is not None:
                return value

    raw = transfer.get("rawTokenAmount")
    if isinstance(raw, dict):
        value = _to_float(raw.get("tokenAmount"))
        if value is None:
            return None
        if raw.get("decimals") is None:
            return value
        decimals = _to_float(raw.get("decimals"))
        if decimals is None or not decimals.is_integer() or not 0 <= decimals <= MAX_DECIMALS:
            return None
        return value / (10 ** int(decimals))
    return None


def _native_spent(item: dict[str, Any], buyer: str | None) -> float | None:
    if not buyer:
        return None
    raw = item.get("nativeTransfers")
    if not isinstance(raw, list):
        return None

    lamports = 0.0
    found = False
    for transfer in raw:
        if not isinstance(transfer, dict):
            continue
        if _first_string(transfer, "fromUserAccount", "from") != buyer:
            continue
        value = _to_float(transfer.get("amount"))
        if value is None or value <= 0:
            continue
        lamports += value
        found = True

    if not found:
        return None
    return lamports / LAMPORTS_PER_SOL


def _nested_signature(transaction: Any) -> str | None:
    if not isinstance(transaction, dict):
        return None
    signatures = transaction.get("signatures")
    if isinstance(signatures, list) and signatures:
        return _string_or_none(signatures[0])
    return None


def _first_string(record: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = _string_or_none(record.get(key))
        if value is not None:
            return value
    return None


def _string_or_none(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number
