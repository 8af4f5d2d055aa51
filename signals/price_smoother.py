# signals/price_smoother.py
from decimal import Decimal
from typing import List, Optional

from services.quantize import to_decimal


class PriceSmoother:
    """Averages observed prices into a stable start price once enough samples exist"""

    def __init__(self, history: Optional[List[Decimal]] = None, min_samples: int = 4):
        # history may be the Session's list so the session owns the samples
        self.history = history if history is not None else []
        self.min_samples = min_samples
        self._smoothed: Optional[Decimal] = None

    def observe(self, price) -> Optional[Decimal]:
        """Add price; return the mean of ALL samples, or None while warming up"""
        self.history.append(to_decimal(price))
        if len(self.history) < self.min_samples:
            self._smoothed = None
            return None
        # Not a ring buffer: the mean spans the full history
        self._smoothed = sum(self.history, Decimal("0")) / len(self.history)
        return self._smoothed

    @property
    def smoothed(self) -> Optional[Decimal]:
        """Last smoothed price (None until min_samples observed)"""
        return self._smoothed

    @property
    def size(self):
        return len(self.history)

    @property
    def is_ready(self):
        return len(self.history) >= self.min_samples

    def reset(self):
        self.history.clear()
        self._smoothed = None
