# fintrack_api/transactions.py

import logging
import math
from datetime import date, datetime

import pandas as pd
from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from . import db
from .validation import RequestValidator, parse_iso_date, validation_failed

logger = logging.getLogger("fintrack-api")

transactions_bp = Blueprint("transactions", __name__)

TRANSACTION_TYPES = ("expense", "income")
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# request key -> column
UPDATABLE_FIELDS = {
    "merchant": "merchant",
    "amount": "amount",
    "category": "category",
    "date": "date",
    "type": "type",
    "description": "description",
}


def serialize_transaction(row):
    return {
        "id": row["id"],
        "merchant": row["merchant"],
        "amount": float(row["amount"]),
        "category": row["category"],
        "date": row["date"],
        "time": row["time"],
        "type": row["type"],
        "description": row["description"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def validate_transaction(data, partial=False):
    required = not partial
    v = RequestValidator(data)
    v.text("merchant", "Merchant is required", required=required)
    v.number("amount", "Amount must be a positive number", required=required, minimum=0, exclusive=True)
    v.text("category", "Category is required", required=required)
    v.iso_date("date", "Date must be valid ISO8601 date", required=required)
    v.choice("type", TRANSACTION_TYPES, "Type must be income or expense", required=required)
    v.text("description", "Description cannot exceed 500 characters", required=False, min_len=0, max_len=500)
    return v

def _not_found():
    return jsonify({"success": False, "message": "Transaction not found"}), 404

def _positive_int(value, default):
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 1 else None


# ---------------- Listing & Stats ----------------
@transactions_bp.route("", methods=["GET"])
@jwt_required()
def list_transactions():
    user_id = int(get_jwt_identity())
    args = request.args
    errors = []

    page = _positive_int(args.get("page"), 1)
    if page is None:
        errors.append({"field": "page", "message": "Page must be a positive integer"})
    limit = _positive_int(args.get("limit"), DEFAULT_PAGE_SIZE)
    if limit is None or limit > MAX_PAGE_SIZE:
        errors.append({"field": "limit", "message": "Limit must be between 1 and 100"})
    tx_type = args.get("type")
    if tx_type is not None and tx_type not in TRANSACTION_TYPES:
        errors.append({"field": "type", "message": "Type must be income or expense"})
    start_date = parse_iso_date(args.get("startDate")) if args.get("startDate") else None
    if args.get("startDate") and start_date is None:
        errors.append({"field": "startDate", "message": "Start date must be valid ISO8601 date"})
    end_date = parse_iso_date(args.get("endDate")) if args.get("endDate") else None
    if args.get("endDate") and end_date is None:
        errors.append({"field": "endDate", "message": "End date must be valid ISO8601 date"})
    if errors:
        return validation_failed(errors)

    where, params = ["user_id=?"], [user_id]
    if args.get("category"):
        where.append("category=?")
        params.append(args["category"])
    if tx_type:
        where.append("type=?")
        params.append(tx_type)
    if start_date:
        where.append("date >= ?")
        params.append(start_date.isoformat())
    if end_date:
        where.append("date <= ?")
        params.append(end_date.isoformat())
    where_sql = " AND ".join(where)

    total = db.query_db(f"SELECT COUNT(*) AS count FROM transactions WHERE {where_sql}", params, one=True)["count"]
    rows = db.query_db(
        f"""SELECT * FROM transactions WHERE {where_sql}
        ORDER BY date DESC, created_at DESC, id DESC LIMIT ? OFFSET ?""",
        (*params, limit, (page - 1) * limit)
    )

    return jsonify({
        "success": True,
        "data": {
            "transactions": [serialize_transaction(r) for r in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit)
            }
        }
    })


@transactions_bp.route("/stats/summary", methods=["GET"])
@jwt_required()
def stats_summary():
    """Totals by type and by (category, type) for a date window (default: this month)."""
    user_id = int(get_jwt_identity())
    today = date.today()

    start_date = parse_iso_date(request.args.get("startDate")) if request.args.get("startDate") else today.replace(day=1)
    end_date = parse_iso_date(request.args.get("endDate")) if request.args.get("endDate") else today
    if start_date is None or end_date is None:
        return validation_failed([{"field": "startDate/endDate", "message": "Dates must be valid ISO8601 dates"}])

    rows = db.query_db(
        "SELECT category, type, amount FROM transactions WHERE user_id=? AND date >= ? AND date <= ?",
        (user_id, start_date.isoformat(), end_date.isoformat())
    )

    summary, category_breakdown = [], []
    if rows:
        df = pd.DataFrame([db.row_to_dict(r) for r in rows])

        by_type = df.groupby("type")["amount"].agg(["sum", "count"]).reset_index()
        summary = [
            {"type": r["type"], "total": round(float(r["sum"]), 2), "count": int(r["count"])}
            for _, r in by_type.iterrows()
        ]

        by_category = (
            df.groupby(["category", "type"])["amount"].agg(["sum", "count"])
            .reset_index()
            .sort_values("sum", ascending=False, kind="stable")
        )
        category_breakdown = [
            {
                "category": r["category"],
                "type": r["type"],
                "total": round(float(r["sum"]), 2),
                "count": int(r["count"])
            }
            for _, r in by_category.iterrows()
        ]

    logger.info(f"📊 Stats for user {user_id}: {len(rows)} transactions between {start_date} and {end_date}")
    return jsonify({
        "success": True,
        "data": {
            "summary": summary,
            "categoryBreakdown": category_breakdown,
            "period": {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()}
        }
    })


# ---------------- Single Transaction ----------------
@transactions_bp.route("/<int:tx_id>", methods=["GET"])
@jwt_required()
def get_transaction(tx_id):
    user_id = int(get_jwt_identity())
    tx = db.query_db("SELECT * FROM transactions WHERE id=? AND user_id=?", (tx_id, user_id), one=True)
    if not tx:
        return _not_found()
    return jsonify({"success": True, "data": {"transaction": serialize_transaction(tx)}})


@transactions_bp.route("", methods=["POST"])
@jwt_required()
def create_transaction():
    user_id = int(get_jwt_identity())
    v = validate_transaction(request.get_json(silent=True))
    if not v.ok:
        return validation_failed(v.errors)

    data = v.clean
    tx_id = db.execute_db(
        """INSERT INTO transactions (user_id, merchant, amount, category, date, time, type, description)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (user_id, data["merchant"], data["amount"], data["category"], data["date"],
         datetime.now().strftime("%I:%M:%S %p"), data["type"], data.get("description"))
    )
    logger.info(f"✅ Transaction {tx_id} created for user {user_id}")

    tx = db.query_db("SELECT * FROM transactions WHERE id=?", (tx_id,), one=True)
    return jsonify({
        "success": True,
        "message": "Transaction created successfully",
        "data": {"transaction": serialize_transaction(tx)}
    }), 201


@transactions_bp.route("/<int:tx_id>", methods=["PUT"])
@jwt_required()
def update_transaction(tx_id):
    user_id = int(get_jwt_identity())
    v = validate_transaction(request.get_json(silent=True), partial=True)
    if not v.ok:
        return validation_failed(v.errors)

    tx = db.query_db("SELECT id FROM transactions WHERE id=? AND user_id=?", (tx_id, user_id), one=True)
    if not tx:
        return _not_found()

    updates = {UPDATABLE_FIELDS[k]: val for k, val in v.clean.items() if k in UPDATABLE_FIELDS}
    if updates:
        assignments = ", ".join(f"{col}=?" for col in updates)
        db.execute_db(
            f"UPDATE transactions SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
            (*updates.values(), tx_id, user_id)
        )

    tx = db.query_db("SELECT * FROM transactions WHERE id=?", (tx_id,), one=True)
    return jsonify({
        "success": True,
        "message": "Transaction updated successfully",
        "data": {"transaction": serialize_transaction(tx)}
    })


@transactions_bp.route("/<int:tx_id>", methods=["DELETE"])
@jwt_required()
def delete_transaction(tx_id):
    user_id = int(get_jwt_identity())
    deleted = db.execute_count("DELETE FROM transactions WHERE id=? AND user_id=?", (tx_id, user_id))
    if not deleted:
        return _not_found()

    logger.info(f"🗑️ Transaction {tx_id} deleted for user {user_id}")
    return jsonify({"success": True, "message": "Transaction deleted successfully"})
