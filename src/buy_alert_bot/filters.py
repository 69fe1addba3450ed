from __future__ import annotations

from dataclasses import dataclass

from .types import TransferEvent

NO_QUALIFYING_TRANSFER = "no_qualifying_transfer"
MINT_MISMATCH = "mint_mismatch"
BELOW_MINIMUM = "below_minimum"
WALLET_MISMATCH = "wallet_mismatch"


@dataclass(frozen=True)
class FilterRules:
    target_mint: str | None = None
    min_amount: float | None = None
    strict: bool = False
    target_wallet: str | None = None

    def rejection_reason(self, event: TransferEvent) -> str | None:
        if self.strict and self.target_mint and event.amount is None:
            return NO_QUALIFYING_TRANSFER
        if self.target_mint and event.mint is not None and event.mint != self.target_mint:
            return MINT_MISMATCH
        if (
            self.min_amount is not None
            and event.amount is not None
            and event.amount < self.min_amount
        ):
            return BELOW_MINIMUM
        if self.target_wallet and event.buyer is not None and event.buyer != self.target_wallet:
            return WALLET_MISMATCH
        return None

    def accepts(self, event: TransferEvent) -> bool:
        return self.rejection_reason(event) is None
