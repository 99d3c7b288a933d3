# fintrack_client/models.py
"""
Client-side mirrors of the backend entities. Field names are snake_case;
``from_api`` maps the backend's camelCase JSON.
"""

from dataclasses import dataclass
from typing import Optional

EXPENSE = "expense"
INCOME = "income"


@dataclass
class Transaction:
    """
    A single expense or income entry.

    ``amount`` is always the non-negative magnitude; ``type`` decides whether it
    adds to or subtracts from the balance.
    """
    id: int
    merchant: str
    amount: float
    category: str
    date: str
    type: str = EXPENSE
    time: Optional[str] = None
    description: Optional[str] = None

    def is_expense(self) -> bool:
        return self.type == EXPENSE

    def is_income(self) -> bool:
        return self.type == INCOME

    @property
    def signed_amount(self) -> float:
        """Contribution to the running balance."""
        return self.amount if self.is_income() else -abs(self.amount)

    @classmethod
    def from_api(cls, data: dict) -> "Transaction":
        return cls(
            id=data["id"],
            merchant=data.get("merchant", ""),
            amount=abs(float(data.get("amount", 0))),
            category=data.get("category", ""),
            date=data.get("date", ""),
            type=data.get("type", EXPENSE),
            time=data.get("time"),
            description=data.get("description"),
        )


@dataclass
class BudgetCategory:
    """A monthly budget ceiling for one category (``allocated`` is canonical/monthly)."""
    id: int
    name: str
    allocated: float
    spent: float = 0.0  # persisted value, not used for live spend
    color: str = "#3B82F6"
    icon: Optional[str] = None
    period: str = "monthly"
    is_active: bool = True

    @classmethod
    def from_api(cls, data: dict) -> "BudgetCategory":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            allocated=float(data.get("allocated", 0)),
            spent=float(data.get("spent") or 0),
            color=data.get("color", "#3B82F6"),
            icon=data.get("icon"),
            period=data.get("period", "monthly"),
            is_active=bool(data.get("isActive", True)),
        )


@dataclass
class Goal:
    id: int
    title: str
    target_amount: float
    current_amount: float
    target_date: str
    category: str
    priority: str = "medium"
    status: str = "active"
    description: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "Goal":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            target_amount=float(data.get("targetAmount", 0)),
            current_amount=float(data.get("currentAmount", 0)),
            target_date=data.get("targetDate", ""),
            category=data.get("category", ""),
            priority=data.get("priority", "medium"),
            status=data.get("status", "active"),
            description=data.get("description"),
        )


@dataclass
class UserProfile:
    """Local projection of the signed-in user. ``monthly_income`` lives only on the client."""
    name: str = ""
    email: str = ""
    currency: str = "USD"
    monthly_income: float = 0.0
