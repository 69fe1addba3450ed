from __future__ import annotations


class CooldownGate:
    def __init__(self, cooldown_ms: int) -> None:
        if cooldown_ms < 0:
            raise ValueError("cooldown_ms must not be negative")
        self.cooldown_ms = cooldown_ms
        self.last_accepted_at: int | None = None

    def ready(self, now_ms: int) -> bool:
        if self.last_accepted_at is None:
            return True
        return now_ms - self.last_accepted_at >= self.cooldown_ms

    def try_acquire(self, now_ms: int) -> bool:
        # Rejected attempts leave the stamp untouched and are not queued.
        if not self.ready(now_ms):
            return False
        self.last_accepted_at = now_ms
        return True
