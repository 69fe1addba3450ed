from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    target_mint: str | None
    min_amount: float | None
    strict_mint_filter: bool
    target_wallet: str | None
    alert_cooldown_seconds: float
    dedup_max_signatures: int
    dedup_keep_fraction: float
    webhook_secret: str | None
    webhook_secret_header: str
    telegram_bot_token: str | None
    telegram_chat_id: str | None
    token_symbol: str
    explorer_tx_base: str
    host: str
    port: int
    log_level: str
    health_log_interval_seconds: int
    max_body_bytes: int
    public_dir: str | None
    assets_dir: str | None

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


def _optional_str(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _optional_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def load_settings() -> Settings:
    load_dotenv()
    settings = Settings(
        target_mint=_optional_str("TARGET_MINT"),
        min_amount=_optional_float("MIN_AMOUNT", None),
        strict_mint_filter=_optional_bool("STRICT_MINT_FILTER", False),
        target_wallet=_optional_str("TARGET_WALLET"),
        alert_cooldown_seconds=_optional_float("ALERT_COOLDOWN_SECONDS", 20.0),
        dedup_max_signatures=_optional_int("DEDUP_MAX_SIGNATURES", 5000),
        dedup_keep_fraction=_optional_float("DEDUP_KEEP_FRACTION", 0.5),
        webhook_secret=_optional_str("WEBHOOK_SECRET"),
        webhook_secret_header=os.getenv("WEBHOOK_SECRET_HEADER", "Authorization").strip(),
        telegram_bot_token=_optional_str("TELEGRAM_BOT_TOKEN"),
        telegram_chat_id=_optional_str("TELEGRAM_CHAT_ID"),
        token_symbol=os.getenv("TOKEN_SYMBOL", "NC").strip() or "NC",
        explorer_tx_base=os.getenv("EXPLORER_TX_BASE", "https://solscan.io/tx").strip(),
        host=os.getenv("HOST", "0.0.0.0").strip(),
        port=_optional_int("PORT", 3000),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        health_log_interval_seconds=_optional_int("HEALTH_LOG_INTERVAL_SECONDS", 60),
        max_body_bytes=_optional_int("MAX_BODY_BYTES", 1024 * 1024),
        public_dir=os.getenv("PUBLIC_DIR", "public").strip() or None,
        assets_dir=os.getenv("ASSETS_DIR", "assets").strip() or None,
    )
    validate_settings(settings)
    return settings


def validate_settings(settings: Settings) -> None:
    if settings.alert_cooldown_seconds < 0:
        raise ValueError("ALERT_COOLDOWN_SECONDS must not be negative")
    if settings.min_amount is not None and settings.min_amount < 0:
        raise ValueError("MIN_AMOUNT must not be negative")
    if settings.dedup_max_signatures < 1:
        raise ValueError("DEDUP_MAX_SIGNATURES must be at least 1")
    if not 0 < settings.dedup_keep_fraction <= 1:
        raise ValueError("DEDUP_KEEP_FRACTION must be in (0, 1]")
    if settings.max_body_bytes < 1:
        raise ValueError("MAX_BODY_BYTES must be at least 1")
    if not settings.webhook_secret_header:
        raise ValueError("WEBHOOK_SECRET_HEADER must not be empty")
