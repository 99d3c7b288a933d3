# fintrack_client/aggregation.py
"""
Derived, read-only views over the raw collections held by the session store.

Everything here is recomputed from the lists passed in; nothing is cached.
Spend figures are lifetime totals (no date window) unless a function says
otherwise, and they stay lifetime even when allocations are shown weekly or
yearly.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from .currency import format_currency_simple, round_half_up
from .models import BudgetCategory, Goal, Transaction
from .periods import Period, to_display

# ---------------- Thresholds ----------------
OVER_PERCENT = 100
WARNING_PERCENT = 80
UNDERSPENT_RATIO = 0.5
LOW_UTILIZATION_PERCENT = 70

RECOMMENDED_PERCENTAGES = {
    "Housing": 0.30,
    "Food & Dining": 0.12,
    "Transportation": 0.15,
    "Utilities": 0.08,
    "Entertainment": 0.05,
    "Shopping": 0.05,
}
DEFAULT_RECOMMENDED_PERCENTAGE = 0.025

BALANCED_MESSAGE = "• Your budget is well balanced!"


@dataclass
class BudgetLine:
    """One budget category as displayed for a period."""
    id: int
    name: str
    allocated: float
    spent: float
    color: str
    percentage: float
    status: str


# ---------------- Transactions ----------------
def total_spent(transactions: Iterable[Transaction]) -> float:
    return sum(abs(t.amount) for t in transactions if t.is_expense())


def total_income(transactions: Iterable[Transaction]) -> float:
    return sum(t.amount for t in transactions if t.is_income())


def net_balance(transactions: Iterable[Transaction]) -> float:
    """Income minus expenses, recomputed from scratch."""
    return sum(t.signed_amount for t in transactions)


def category_spending(transactions: Iterable[Transaction], category_name: str) -> float:
    """Lifetime expense total for one category (exact, case-sensitive match)."""
    return sum(
        abs(t.amount) for t in transactions
        if t.is_expense() and t.category == category_name
    )


def month_totals(transactions: Iterable[Transaction], year: int, month: int) -> dict:
    """Spent, income and saved for a single calendar month (dashboard figures)."""
    in_month = [t for t in transactions if _in_month(t.date, year, month)]
    spent = total_spent(in_month)
    income = total_income(in_month)
    return {"spent": spent, "income": income, "saved": income - spent}


def savings_rate(income: float, saved: float) -> float:
    return (saved / income) * 100 if income > 0 else 0


def _in_month(value: str, year: int, month: int) -> bool:
    try:
        d = date.fromisoformat(str(value)[:10])
    except ValueError:
        return False
    return d.year == year and d.month == month


# ---------------- Budgets ----------------
def budget_status(spent: float, allocated: float) -> str:
    """'over', 'warning' or 'good' from the share of the allocation already spent."""
    if allocated <= 0:
        return "over" if spent > 0 else "good"
    percentage = (spent / allocated) * 100
    if percentage >= OVER_PERCENT:
        return "over"
    if percentage >= WARNING_PERCENT:
        return "warning"
    return "good"


def budget_view(budgets: Iterable[BudgetCategory], transactions: Sequence[Transaction],
                period=Period.MONTHLY) -> List[BudgetLine]:
    """
    Active budgets with the allocation scaled to ``period`` and the live
    lifetime spend for each category.
    """
    lines = []
    for category in budgets:
        if not category.is_active:
            continue
        allocated = to_display(category.allocated, period)
        spent = category_spending(transactions, category.name)
        lines.append(BudgetLine(
            id=category.id,
            name=category.name,
            allocated=allocated,
            spent=spent,
            color=category.color,
            percentage=(spent / allocated) * 100 if allocated > 0 else 0,
            status=budget_status(spent, allocated),
        ))
    return lines


def budget_totals(lines: Sequence[BudgetLine]) -> Tuple[float, float, float]:
    """(total allocated, total spent, remaining) across the displayed lines."""
    allocated = sum(line.allocated for line in lines)
    spent = sum(line.spent for line in lines)
    return allocated, spent, allocated - spent


def recommended_percentage(category_name: str) -> float:
    return RECOMMENDED_PERCENTAGES.get(category_name, DEFAULT_RECOMMENDED_PERCENTAGE)


def recommended_allocation(category_name: str, monthly_income: float) -> float:
    return monthly_income * recommended_percentage(category_name)


def insights(lines: Sequence[BudgetLine], currency: str = "USD") -> List[str]:
    """
    Budget observations in a fixed order. Each check is independent, so several
    can show up together; when none applies a single "balanced" message is
    returned.
    """
    messages = []

    overspent = [line for line in lines if line.spent > line.allocated]
    if overspent:
        messages.append(f"• You're overspending in {len(overspent)} categories")

    if lines:
        # stable sort keeps array order on ties
        top = sorted(lines, key=lambda line: line.spent, reverse=True)[0]
        messages.append(f"• Highest spending: {top.name} ({format_currency_simple(top.spent, currency)})")

    underspent = next(
        (line for line in lines if line.allocated > 0 and line.spent < line.allocated * UNDERSPENT_RATIO),
        None,
    )
    if underspent is not None:
        messages.append(f"• Consider reallocating from {underspent.name}")

    total_allocated, total_spent_, _ = budget_totals(lines)
    if total_allocated > 0:
        utilization = (total_spent_ / total_allocated) * 100
        if utilization < LOW_UTILIZATION_PERCENT:
            messages.append(f"• Budget utilization is {round_half_up(utilization, 0)}% - consider optimizing")

    return messages or [BALANCED_MESSAGE]


# ---------------- Goals ----------------
def goal_progress(goal: Goal) -> float:
    """Percentage of the target reached; may exceed 100."""
    return (goal.current_amount / goal.target_amount) * 100 if goal.target_amount > 0 else 0


def overall_progress(goals: Iterable[Goal]) -> float:
    goals = list(goals)
    target = sum(g.target_amount for g in goals)
    current = sum(g.current_amount for g in goals)
    return (current / target) * 100 if target > 0 else 0


def goal_status(goal: Goal, today: Optional[date] = None) -> str:
    today = today or date.today()
    progress = goal_progress(goal)
    if progress >= 100:
        return "completed"
    try:
        if date.fromisoformat(str(goal.target_date)[:10]) < today:
            return "overdue"
    except ValueError:
        pass
    if progress >= 75:
        return "on-track"
    if progress >= 50:
        return "good"
    return "behind"
