"""
fintrack_client - client-side logic for FinTrack
================================================
Currency formatting, budget period conversion, derived aggregates and a
session store that keeps local state in step with the backend.
"""

from .api_client import ApiClient, ApiError
from .store import AppState, Result, SessionStore, initial_state

__all__ = ["ApiClient", "ApiError", "AppState", "Result", "SessionStore", "initial_state"]
