"""
Unique Number Generator

Human-readable identifiers for receipts, invoices and transactions:

    <PREFIX><millisecond timestamp><3-digit random suffix>
    e.g. LBC1734512345678042

Uniqueness is probabilistic: two numbers only collide when they are drawn
in the same millisecond with the same 0-999 suffix. That is fine for a
village committee's volume, not for bulk imports.
"""

import random
import time
from typing import Callable, Optional

from festival_fund.config import get_settings


class UniqueNumberGenerator:
    """Builds prefixed timestamp + random-suffix numbers."""

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            clock: Returns seconds since the epoch (defaults to time.time)
            rng: Random source for the suffix
        """
        self._clock = clock or time.time
        self._rng = rng or random.Random()

    def generate(self, prefix: str) -> str:
        timestamp_ms = int(self._clock() * 1000)
        suffix = self._rng.randint(0, 999)
        return f"{prefix}{timestamp_ms}{suffix:03d}"

    def receipt_number(self) -> str:
        return self.generate(get_settings().app.receipt_prefix)

    def invoice_number(self) -> str:
        return self.generate(get_settings().app.invoice_prefix)

    def transaction_reference(self) -> str:
        return self.generate(get_settings().app.transaction_prefix)
