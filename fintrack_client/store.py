# fintrack_client/store.py
"""
Session state for one signed-in user.

``SessionStore`` owns the current ``AppState`` and is the only thing that
changes it. Mutations go to the backend first and touch local state only once
the backend has confirmed them, using the server's ids and normalized
fields. Failures are logged and reported through ``Result``; the local state
is left as it was.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, List, NamedTuple, Optional

from . import aggregation
from .api_client import ApiError
from .models import EXPENSE, BudgetCategory, Goal, Transaction, UserProfile
from .periods import Period

logger = logging.getLogger("fintrack-client")

NEW_BUDGET_DAYS = 30


@dataclass
class AppState:
    transactions: List[Transaction] = field(default_factory=list)
    budget_categories: List[BudgetCategory] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    user_profile: UserProfile = field(default_factory=UserProfile)
    total_balance: float = 0.0
    is_loading: bool = False
    token: Optional[str] = None


def initial_state() -> AppState:
    return AppState()


class Result(NamedTuple):
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _iso(value):
    return value if isinstance(value, str) else value.isoformat()


def _failed(action, error):
    logger.error(f"❌ {action} failed: {error}")
    return Result(error=str(error))


class SessionStore:
    def __init__(self, api, max_workers=3):
        self.api = api
        self.max_workers = max_workers
        self._state = initial_state()
        self._lock = threading.Lock()

    @property
    def state(self) -> AppState:
        return self._state

    def _apply(self, change=None, **changes):
        """
        Swap in a new state. ``change`` maps the current state to extra fields
        and runs under the lock.
        """
        with self._lock:
            if change is not None:
                changes.update(change(self._state))
            self._state = replace(self._state, **changes)

    # ---------------- Lifecycle ----------------
    def login(self, email, password) -> Result:
        try:
            payload = self.api.login(email, password)
        except ApiError as e:
            return _failed("Login", e)
        data = payload["data"]
        return self.start_session(data["user"], data["token"])

    def start_session(self, user, token) -> Result:
        self.api.token = token
        preferences = user.get("preferences") or {}
        self._apply(lambda s: {"user_profile": replace(
            s.user_profile,
            name=user.get("name", ""),
            email=user.get("email", ""),
            currency=preferences.get("currency", "USD"),
        )}, token=token)
        return self.load_data()

    def load_data(self) -> Result:
        """Fetch transactions, budgets and goals in parallel and replace the local copies."""
        self._apply(is_loading=True)
        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                tx_future = pool.submit(self.api.get_all_transactions)
                budgets_future = pool.submit(self.api.get_budgets)
                goals_future = pool.submit(self.api.get_goals)
                raw_transactions = tx_future.result()
                raw_budgets = budgets_future.result()["data"]["budgets"]
                raw_goals = goals_future.result()["data"]["goals"]
        except ApiError as e:
            self._apply(is_loading=False)
            return _failed("Loading data", e)

        transactions = [Transaction.from_api(t) for t in raw_transactions]
        self._apply(
            transactions=transactions,
            budget_categories=[BudgetCategory.from_api(b) for b in raw_budgets],
            goals=[Goal.from_api(g) for g in raw_goals],
            total_balance=aggregation.net_balance(transactions),
            is_loading=False,
        )
        logger.info(
            f"📋 Loaded {len(transactions)} transactions, {len(raw_budgets)} budgets, {len(raw_goals)} goals"
        )
        return Result(value=self._state)

    def logout(self) -> Result:
        error = None
        try:
            self.api.logout()
        except ApiError as e:
            logger.warning(f"Logout request failed, clearing session anyway: {e}")
            error = str(e)
        self.reset()
        return Result(error=error)

    def reset(self):
        self.api.token = None
        with self._lock:
            self._state = initial_state()

    # ---------------- Transactions ----------------
    def add_transaction(self, merchant, amount, category, tx_date=None, type=EXPENSE, description=None) -> Result:
        payload = {
            "merchant": merchant,
            "amount": abs(amount),
            "category": category,
            "date": _iso(tx_date or date.today()),
            "type": type,
        }
        if description:
            payload["description"] = description
        try:
            response = self.api.create_transaction(payload)
        except ApiError as e:
            return _failed("Adding transaction", e)

        tx = Transaction.from_api(response["data"]["transaction"])
        self._apply(lambda s: {
            "transactions": [tx] + s.transactions,
            "total_balance": s.total_balance + tx.signed_amount,
        })
        return Result(value=tx)

    def delete_transaction(self, tx_id) -> Result:
        try:
            self.api.delete_transaction(tx_id)
        except ApiError as e:
            return _failed("Deleting transaction", e)

        with self._lock:
            state = self._state
            removed = next((t for t in state.transactions if t.id == tx_id), None)
            if removed is not None:
                self._state = replace(
                    state,
                    transactions=[t for t in state.transactions if t.id != tx_id],
                    total_balance=state.total_balance - removed.signed_amount,
                )
        return Result(value=removed)

    # ---------------- Budgets ----------------
    def update_budget(self, budget_id, changes) -> Result:
        try:
            response = self.api.update_budget(budget_id, changes)
        except ApiError as e:
            return _failed(f"Updating budget {budget_id}", e)

        budget = BudgetCategory.from_api(response["data"]["budget"])
        self._apply(lambda s: {"budget_categories": [
            budget if b.id == budget_id else b for b in s.budget_categories
        ]})
        return Result(value=budget)

    def add_budget_category(self, name, allocated, color="#3B82F6", icon=None) -> Result:
        now = datetime.now(timezone.utc)
        payload = {
            "name": name,
            "allocated": allocated,
            "color": color,
            "period": "monthly",
            "startDate": now.isoformat(),
            "endDate": (now + timedelta(days=NEW_BUDGET_DAYS)).isoformat(),
        }
        if icon:
            payload["icon"] = icon
        try:
            response = self.api.create_budget(payload)
        except ApiError as e:
            return _failed("Adding budget category", e)

        budget = BudgetCategory.from_api(response["data"]["budget"])
        self._apply(lambda s: {"budget_categories": s.budget_categories + [budget]})
        return Result(value=budget)

    def rebalance(self, monthly_income=None) -> List[Result]:
        """
        Set every active category to its recommended share of the monthly income.

        Updates run one at a time and stop at the first failure; categories
        already updated keep their new allocation.
        """
        income = self._state.user_profile.monthly_income if monthly_income is None else monthly_income
        results = []
        for category in [b for b in self._state.budget_categories if b.is_active]:
            allocated = aggregation.recommended_allocation(category.name, income)
            result = self.update_budget(category.id, {"allocated": allocated})
            results.append(result)
            if not result.ok:
                logger.warning(f"Rebalance stopped at {category.name}, {len(results) - 1} categories updated")
                break
        return results

    # ---------------- Goals ----------------
    def add_goal(self, title, target_amount, target_date, category,
                 current_amount=0, priority="medium", description=None) -> Result:
        payload = {
            "title": title,
            "targetAmount": target_amount,
            "currentAmount": current_amount,
            "targetDate": _iso(target_date),
            "category": category,
            "priority": priority,
        }
        if description:
            payload["description"] = description
        try:
            response = self.api.create_goal(payload)
        except ApiError as e:
            return _failed("Adding goal", e)

        goal = Goal.from_api(response["data"]["goal"])
        self._apply(lambda s: {"goals": s.goals + [goal]})
        return Result(value=goal)

    def update_goal(self, goal_id, changes) -> Result:
        try:
            response = self.api.update_goal(goal_id, changes)
        except ApiError as e:
            return _failed(f"Updating goal {goal_id}", e)

        goal = Goal.from_api(response["data"]["goal"])
        self._apply(lambda s: {"goals": [goal if g.id == goal_id else g for g in s.goals]})
        return Result(value=goal)

    def delete_goal(self, goal_id) -> Result:
        try:
            self.api.delete_goal(goal_id)
        except ApiError as e:
            return _failed(f"Deleting goal {goal_id}", e)

        self._apply(lambda s: {"goals": [g for g in s.goals if g.id != goal_id]})
        return Result()

    def add_to_goal(self, goal_id, amount) -> Result:
        goal = next((g for g in self._state.goals if g.id == goal_id), None)
        if goal is None:
            return _failed(f"Adding to goal {goal_id}", "Goal not found")
        return self.update_goal(goal_id, {"currentAmount": goal.current_amount + amount})

    # ---------------- Profile ----------------
    def update_user_profile(self, **fields) -> Result:
        """Local only; nothing here is sent to the backend."""
        try:
            self._apply(lambda s: {"user_profile": replace(s.user_profile, **fields)})
        except TypeError as e:
            return Result(error=str(e))
        return Result(value=self._state.user_profile)

    # ---------------- Reads ----------------
    def total_spent(self):
        return aggregation.total_spent(self._state.transactions)

    def total_income(self):
        return aggregation.total_income(self._state.transactions)

    def category_spending(self, category_name):
        return aggregation.category_spending(self._state.transactions, category_name)

    def budget_view(self, period=Period.MONTHLY):
        return aggregation.budget_view(self._state.budget_categories, self._state.transactions, period)

    def overall_progress(self):
        return aggregation.overall_progress(self._state.goals)

    def insights(self, period=Period.MONTHLY):
        return aggregation.insights(self.budget_view(period), self._state.user_profile.currency)
