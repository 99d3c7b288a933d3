"""
fintrack_api - REST backend for FinTrack
========================================
Flask app factory with JWT-protected blueprints for auth, transactions,
budgets, goals and user preferences, persisted in SQLite.
"""

from .app import create_app

__all__ = ["create_app"]
