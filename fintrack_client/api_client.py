# fintrack_client/api_client.py
"""
HTTP gateway to the FinTrack backend.

Every route helper returns the decoded JSON envelope
(``{"success", "message", "data"}``) for a 2xx answer and raises
``ApiError`` for anything else, transport failures included.
"""

import logging
import os

import requests

logger = logging.getLogger("fintrack-client")

API_BASE = os.getenv("FINTRACK_API_URL", "http://localhost:5000/api")
DEFAULT_TIMEOUT = 10
PAGE_LIMIT = 100


class ApiError(Exception):
    """Non-2xx answer from the backend. ``status_code`` is 0 when the request never got one."""

    def __init__(self, status_code, message, errors=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []

    def __str__(self):
        return f"[{self.status_code}] {self.message}"


class ApiClient:
    def __init__(self, base_url=None, token=None, timeout=DEFAULT_TIMEOUT, session=None):
        self.base_url = (base_url or API_BASE).rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    # ---------------- Core ----------------
    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method, path, params=None, json=None):
        url = self.base_url + path
        try:
            response = self.session.request(
                method.upper(), url, headers=self._headers(), params=params, json=json, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"❌ Connection failed: {method.upper()} {path}: {e}")
            raise ApiError(0, f"Connection failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not 200 <= response.status_code < 300:
            message = payload.get("message") or f"HTTP error! status: {response.status_code}"
            logger.warning(f"{method.upper()} {path} -> {response.status_code}: {message}")
            raise ApiError(response.status_code, message, payload.get("errors"))

        return payload

    # ---------------- Auth ----------------
    def register(self, name, email, password):
        return self.request("POST", "/auth/register", json={"name": name, "email": email, "password": password})

    def login(self, email, password):
        payload = self.request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = payload["data"]["token"]
        return payload

    def verify_email(self, token):
        payload = self.request("POST", "/auth/verify-email", json={"token": token})
        self.token = payload["data"]["token"]
        return payload

    def resend_verification(self, email):
        return self.request("POST", "/auth/resend-verification", json={"email": email})

    def verify_token(self):
        return self.request("GET", "/auth/verify")

    def logout(self):
        try:
            return self.request("POST", "/auth/logout")
        finally:
            self.token = None

    def forgot_password(self, email):
        return self.request("POST", "/auth/forgot-password", json={"email": email})

    def reset_password(self, token, password):
        return self.request("POST", "/auth/reset-password", json={"token": token, "password": password})

    # ---------------- Users ----------------
    def get_user_profile(self):
        return self.request("GET", "/users/profile")

    def update_user_profile(self, **fields):
        return self.request("PUT", "/users/profile", json=fields)

    def update_user_preferences(self, **preferences):
        return self.request("PUT", "/users/preferences", json=preferences)

    # ---------------- Transactions ----------------
    def get_transactions(self, **params):
        """One page; accepts page, limit, category, type, startDate, endDate."""
        return self.request("GET", "/transactions", params=params or None)

    def get_all_transactions(self, **filters):
        transactions, page = [], 1
        while True:
            data = self.get_transactions(page=page, limit=PAGE_LIMIT, **filters)["data"]
            transactions.extend(data["transactions"])
            if page >= data["pagination"]["pages"]:
                return transactions
            page += 1

    def get_transaction(self, tx_id):
        return self.request("GET", f"/transactions/{tx_id}")

    def create_transaction(self, transaction):
        return self.request("POST", "/transactions", json=transaction)

    def update_transaction(self, tx_id, changes):
        return self.request("PUT", f"/transactions/{tx_id}", json=changes)

    def delete_transaction(self, tx_id):
        return self.request("DELETE", f"/transactions/{tx_id}")

    def get_transaction_stats(self, start_date=None, end_date=None):
        params = {}
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date
        return self.request("GET", "/transactions/stats/summary", params=params or None)

    # ---------------- Budgets ----------------
    def get_budgets(self):
        return self.request("GET", "/budgets")

    def create_budget(self, budget):
        return self.request("POST", "/budgets", json=budget)

    def update_budget(self, budget_id, changes):
        return self.request("PUT", f"/budgets/{budget_id}", json=changes)

    def delete_budget(self, budget_id):
        return self.request("DELETE", f"/budgets/{budget_id}")

    # ---------------- Goals ----------------
    def get_goals(self):
        return self.request("GET", "/goals")

    def create_goal(self, goal):
        return self.request("POST", "/goals", json=goal)

    def update_goal(self, goal_id, changes):
        return self.request("PUT", f"/goals/{goal_id}", json=changes)

    def delete_goal(self, goal_id):
        return self.request("DELETE", f"/goals/{goal_id}")

    # ---------------- Health ----------------
    def health_check(self):
        # /health is mounted outside /api
        root = self.base_url[:-len("/api")] if self.base_url.endswith("/api") else self.base_url
        try:
            response = self.session.get(root + "/health", timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiError(0, f"Connection failed: {e}") from e
        if response.status_code != 200:
            raise ApiError(response.status_code, "Health check failed")
        return response.json()
