# fintrack_api/goals.py

import logging
import math
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from . import db
from .validation import RequestValidator, parse_iso_date, parse_number, validation_failed

logger = logging.getLogger("fintrack-api")

goals_bp = Blueprint("goals", __name__)

PRIORITIES = ("low", "medium", "high")
STATUSES = ("active", "completed", "paused", "cancelled")

# request key -> column
UPDATABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "targetAmount": "target_amount",
    "currentAmount": "current_amount",
    "targetDate": "target_date",
    "category": "category",
    "priority": "priority",
    "status": "status",
}


def _now():
    return datetime.now(timezone.utc)

def goal_progress_fields(target, current, target_date):
    """
    Figures derived from the stored amounts and the target date. Days are
    counted up to midnight UTC of the target date, rounded up, never negative.
    """
    remaining = target - current
    try:
        due = datetime.fromisoformat(str(target_date)[:10]).replace(tzinfo=timezone.utc)
        days = max(0, math.ceil((due - _now()).total_seconds() / 86400))
    except ValueError:
        days = 0
    return {
        "remainingAmount": remaining,
        "percentageComplete": (current / target) * 100 if target > 0 else 0,
        "daysRemaining": days,
        "requiredDailySavings": remaining / days if days > 0 else 0,
        # with time left the required daily rate always closes the gap
        "isOnTrack": days > 0 or current >= target,
    }


def serialize_goal(row, milestones=()):
    target, current = float(row["target_amount"]), float(row["current_amount"])
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "targetAmount": target,
        "currentAmount": current,
        "targetDate": row["target_date"],
        "category": row["category"],
        "priority": row["priority"],
        "status": row["status"],
        "milestones": [
            {"id": m["id"], "amount": float(m["amount"]), "date": m["date"], "note": m["note"]}
            for m in milestones
        ],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
        **goal_progress_fields(target, current, row["target_date"]),
    }


def validate_goal(data, partial=False):
    required = not partial
    v = RequestValidator(data)
    v.text("title", "Goal title is required", required=required, max_len=100)
    v.text("description", "Description cannot exceed 500 characters", required=False, min_len=0, max_len=500)
    v.number("targetAmount", "Target amount must be greater than 0", required=required, minimum=0, exclusive=True)
    v.number("currentAmount", "Current amount must be non-negative", required=False, minimum=0)
    v.iso_date("targetDate", "Target date must be valid ISO8601 date", required=required)
    v.text("category", "Category is required", required=required, max_len=50)
    v.choice("priority", PRIORITIES, "Priority must be low, medium, or high", required=False)
    if partial:
        v.choice("status", STATUSES, "Invalid status", required=False)
    _validate_milestones(v)
    return v

def _validate_milestones(v):
    raw = v.data.get("milestones")
    if raw is None:
        return
    if not isinstance(raw, list):
        v.errors.append({"field": "milestones", "message": "Milestones must be a list"})
        return
    milestones = []
    for i, item in enumerate(raw):
        item = item if isinstance(item, dict) else {}
        amount = parse_number(item.get("amount"))
        when = parse_iso_date(item.get("date"))
        note = item.get("note")
        if amount is None or amount < 0:
            v.errors.append({"field": f"milestones[{i}].amount", "message": "Milestone amount must be non-negative"})
        if when is None:
            v.errors.append({"field": f"milestones[{i}].date", "message": "Milestone date must be valid ISO8601 date"})
        if note is not None and (not isinstance(note, str) or len(note.strip()) > 200):
            v.errors.append({"field": f"milestones[{i}].note", "message": "Milestone note cannot exceed 200 characters"})
        milestones.append((amount, when.isoformat() if when else None, note.strip() if isinstance(note, str) else None))
    v.clean["milestones"] = milestones

def _replace_milestones(conn, goal_id, milestones):
    """Runs on the caller's connection; the caller owns the commit."""
    conn.execute("DELETE FROM goal_milestones WHERE goal_id=?", (goal_id,))
    for amount, when, note in milestones:
        conn.execute(
            "INSERT INTO goal_milestones (goal_id, amount, date, note) VALUES (?, ?, ?, ?)",
            (goal_id, amount, when, note)
        )

def _load_goal(goal_id):
    goal = db.query_db("SELECT * FROM goals WHERE id=?", (goal_id,), one=True)
    milestones = db.query_db("SELECT * FROM goal_milestones WHERE goal_id=? ORDER BY date, id", (goal_id,))
    return serialize_goal(goal, milestones)

def _not_found():
    return jsonify({"success": False, "message": "Goal not found"}), 404


@goals_bp.route("", methods=["GET"])
@jwt_required()
def list_goals():
    user_id = int(get_jwt_identity())
    rows = db.query_db("SELECT id FROM goals WHERE user_id=? ORDER BY created_at DESC, id DESC", (user_id,))
    goals = [_load_goal(r["id"]) for r in rows]
    logger.info(f"📋 Retrieved {len(goals)} goals for user {user_id}")
    return jsonify({"success": True, "data": {"goals": goals}})


@goals_bp.route("", methods=["POST"])
@jwt_required()
def create_goal():
    user_id = int(get_jwt_identity())
    v = validate_goal(request.get_json(silent=True))
    if not v.ok:
        return validation_failed(v.errors)

    data = v.clean
    conn = db.get_db()
    # goal and milestones land together or not at all
    with conn:
        goal_id = conn.execute(
            """INSERT INTO goals
            (user_id, title, description, target_amount, current_amount, target_date, category, priority)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user_id,
                data["title"],
                data.get("description"),
                data["targetAmount"],
                data.get("currentAmount", 0),
                data["targetDate"],
                data["category"],
                data.get("priority", "medium"),
            )
        ).lastrowid
        if data.get("milestones"):
            _replace_milestones(conn, goal_id, data["milestones"])

    logger.info(f"✅ Goal created successfully - ID: {goal_id}")
    return jsonify({
        "success": True,
        "message": "Goal created successfully",
        "data": {"goal": _load_goal(goal_id)}
    }), 201


@goals_bp.route("/<int:goal_id>", methods=["PUT"])
@jwt_required()
def update_goal(goal_id):
    user_id = int(get_jwt_identity())
    v = validate_goal(request.get_json(silent=True), partial=True)
    if not v.ok:
        return validation_failed(v.errors)

    goal = db.query_db("SELECT id FROM goals WHERE id=? AND user_id=?", (goal_id, user_id), one=True)
    if not goal:
        return _not_found()

    updates = {UPDATABLE_FIELDS[k]: val for k, val in v.clean.items() if k in UPDATABLE_FIELDS}
    conn = db.get_db()
    with conn:
        if updates:
            assignments = ", ".join(f"{col}=?" for col in updates)
            conn.execute(
                f"UPDATE goals SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
                (*updates.values(), goal_id, user_id)
            )
        if "milestones" in v.clean:
            _replace_milestones(conn, goal_id, v.clean["milestones"])

    return jsonify({
        "success": True,
        "message": "Goal updated successfully",
        "data": {"goal": _load_goal(goal_id)}
    })


@goals_bp.route("/<int:goal_id>", methods=["DELETE"])
@jwt_required()
def delete_goal(goal_id):
    user_id = int(get_jwt_identity())
    logger.info(f"🗑️ Delete goal request - Goal ID: {goal_id}, User ID: {user_id}")

    deleted = db.execute_count("DELETE FROM goals WHERE id=? AND user_id=?", (goal_id, user_id))
    if not deleted:
        logger.warning(f"Goal {goal_id} not found for user {user_id}")
        return _not_found()

    return jsonify({"success": True, "message": "Goal deleted successfully"})
