# fintrack_api/budgets.py

import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from . import db
from .validation import RequestValidator, validation_failed

logger = logging.getLogger("fintrack-api")

budgets_bp = Blueprint("budgets", __name__)

PERIODS = ("weekly", "monthly", "yearly")
DEFAULT_COLOR = "#3B82F6"
OVER_BUDGET_PERCENT = 100
ON_TRACK_PERCENT = 80

# request key -> column
UPDATABLE_FIELDS = {
    "name": "name",
    "allocated": "allocated",
    "spent": "spent",
    "color": "color",
    "icon": "icon",
    "period": "period",
}


def budget_usage(allocated, spent):
    """remaining, percentageUsed and status derived from the stored figures."""
    percentage = (spent / allocated) * 100 if allocated > 0 else 0
    if percentage >= OVER_BUDGET_PERCENT:
        status = "over_budget"
    elif percentage >= ON_TRACK_PERCENT:
        status = "on_track"
    else:
        status = "under_budget"
    return {"remaining": allocated - spent, "percentageUsed": percentage, "status": status}


def serialize_budget(row):
    allocated, spent = float(row["allocated"]), float(row["spent"])
    return {
        "id": row["id"],
        "name": row["name"],
        "allocated": allocated,
        # stored as-is; clients compute live spend from transactions
        "spent": spent,
        "color": row["color"],
        "icon": row["icon"],
        "period": row["period"],
        "startDate": row["start_date"],
        "endDate": row["end_date"],
        "isActive": bool(row["is_active"]),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
        **budget_usage(allocated, spent),
    }

def _not_found():
    return jsonify({"success": False, "message": "Budget not found"}), 404


@budgets_bp.route("", methods=["GET"])
@jwt_required()
def list_budgets():
    user_id = int(get_jwt_identity())
    rows = db.query_db(
        "SELECT * FROM budgets WHERE user_id=? AND is_active=1 ORDER BY created_at DESC, id DESC",
        (user_id,)
    )
    return jsonify({"success": True, "data": {"budgets": [serialize_budget(r) for r in rows]}})


@budgets_bp.route("", methods=["POST"])
@jwt_required()
def create_budget():
    user_id = int(get_jwt_identity())
    v = RequestValidator(request.get_json(silent=True))
    v.text("name", "Budget name is required")
    v.number("allocated", "Allocated amount must be a non-negative number", minimum=0)
    v.choice("period", PERIODS, "Period must be weekly, monthly, or yearly")
    v.iso_date("startDate", "Start date must be valid ISO8601 date")
    v.iso_date("endDate", "End date must be valid ISO8601 date")
    v.text("color", "Color cannot be empty", required=False)
    v.text("icon", "Icon cannot be empty", required=False)
    if not v.ok:
        return validation_failed(v.errors)

    data = v.clean
    budget_id = db.execute_db(
        """INSERT INTO budgets (user_id, name, allocated, color, icon, period, start_date, end_date)
        VALUES (?, ?, ?, ?, COALESCE(?, '💰'), ?, ?, ?)""",
        (user_id, data["name"], data["allocated"], data.get("color", DEFAULT_COLOR), data.get("icon"),
         data["period"], data["startDate"], data["endDate"])
    )
    logger.info(f"✅ Budget {budget_id} ({data['name']}) created for user {user_id}")

    budget = db.query_db("SELECT * FROM budgets WHERE id=?", (budget_id,), one=True)
    return jsonify({
        "success": True,
        "message": "Budget created successfully",
        "data": {"budget": serialize_budget(budget)}
    }), 201


@budgets_bp.route("/<int:budget_id>", methods=["PUT"])
@jwt_required()
def update_budget(budget_id):
    user_id = int(get_jwt_identity())
    v = RequestValidator(request.get_json(silent=True))
    v.text("name", "Budget name cannot be empty", required=False)
    v.number("allocated", "Allocated amount must be a non-negative number", required=False, minimum=0)
    v.number("spent", "Spent amount must be a number", required=False)
    v.text("color", "Color cannot be empty", required=False)
    v.text("icon", "Icon cannot be empty", required=False)
    v.choice("period", PERIODS, "Period must be weekly, monthly, or yearly", required=False)
    if not v.ok:
        return validation_failed(v.errors)

    budget = db.query_db("SELECT id FROM budgets WHERE id=? AND user_id=?", (budget_id, user_id), one=True)
    if not budget:
        return _not_found()

    updates = {UPDATABLE_FIELDS[k]: val for k, val in v.clean.items()}
    if updates:
        assignments = ", ".join(f"{col}=?" for col in updates)
        db.execute_db(
            f"UPDATE budgets SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
            (*updates.values(), budget_id, user_id)
        )
        logger.info(f"Budget {budget_id} updated for user {user_id}: {sorted(updates)}")

    budget = db.query_db("SELECT * FROM budgets WHERE id=?", (budget_id,), one=True)
    return jsonify({
        "success": True,
        "message": "Budget updated successfully",
        "data": {"budget": serialize_budget(budget)}
    })


@budgets_bp.route("/<int:budget_id>", methods=["DELETE"])
@jwt_required()
def delete_budget(budget_id):
    """Soft delete: the row stays, flagged inactive."""
    user_id = int(get_jwt_identity())
    updated = db.execute_count(
        "UPDATE budgets SET is_active=0, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
        (budget_id, user_id)
    )
    if not updated:
        return _not_found()

    logger.info(f"🗑️ Budget {budget_id} deactivated for user {user_id}")
    return jsonify({"success": True, "message": "Budget deleted successfully"})
