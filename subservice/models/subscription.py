"""Subscription domain value returned by the repository."""
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Subscription:
    id: str
    user_id: str
    service_name: str
    price: int
    start_date: date
    end_date: Optional[date] = None

    @property
    def is_ongoing(self) -> bool:
        """An ongoing subscription has no end month."""
        return self.end_date is None
