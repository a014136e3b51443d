"""
Interfaces of the external stores the core reads from.

Implementations live in the calling application; the core only depends on
these shapes.
"""

from datetime import date
from typing import List, Optional, Protocol

from .models import GoalRecord, Transaction


class TransactionStore(Protocol):
    def query(
        self,
        user_scope: str,
        start: date,
        end: date,
        category: Optional[str] = None
    ) -> List[Transaction]:
        """Transactions with ``start <= date < end``, ascending."""
        ...


class GoalStore(Protocol):
    def find_active_goals(self, user_scope: str) -> List[GoalRecord]:
        ...
