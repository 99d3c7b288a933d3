# fintrack_api/users.py

import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from . import db
from .validation import RequestValidator, validation_failed

logger = logging.getLogger("fintrack-api")

users_bp = Blueprint("users", __name__)

CURRENCIES = ("USD", "INR")
LANGUAGES = ("en", "es", "fr", "de", "it", "pt", "ru", "ja", "ko", "zh")

# request key -> column
PREFERENCE_COLUMNS = {
    "currency": "currency",
    "notifications": "notifications",
    "biometricAuth": "biometric_auth",
    "darkMode": "dark_mode",
    "language": "language",
}


def serialize_user(row):
    """Public view of a user row (never includes hashes or tokens)."""
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "avatar": row["avatar"],
        "isPremium": bool(row["is_premium"]),
        "joinDate": row["join_date"],
        "preferences": {
            "currency": row["currency"],
            "notifications": bool(row["notifications"]),
            "biometricAuth": bool(row["biometric_auth"]),
            "darkMode": bool(row["dark_mode"]),
            "language": row["language"],
        },
    }


def _load_user(user_id):
    return db.query_db("SELECT * FROM users WHERE id=?", (user_id,), one=True)

def _user_not_found():
    return jsonify({"success": False, "message": "User not found"}), 404


@users_bp.route("/profile", methods=["GET"])
@jwt_required()
def get_profile():
    user = _load_user(int(get_jwt_identity()))
    if not user:
        return _user_not_found()
    return jsonify({"success": True, "data": {"user": serialize_user(user)}})


@users_bp.route("/profile", methods=["PUT"])
@jwt_required()
def update_profile():
    user_id = int(get_jwt_identity())
    v = RequestValidator(request.get_json(silent=True))
    v.text("name", "Name must be between 2 and 50 characters", required=False, min_len=2, max_len=50)
    v.url("avatar", "Avatar must be a valid URL")
    if not v.ok:
        return validation_failed(v.errors)

    if not _load_user(user_id):
        return _user_not_found()

    updates = {k: v.clean[k] for k in ("name", "avatar") if k in v.clean}
    if updates:
        assignments = ", ".join(f"{col}=?" for col in updates)
        db.execute_db(
            f"UPDATE users SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=?",
            (*updates.values(), user_id)
        )
        logger.info(f"Profile updated for user {user_id}: {sorted(updates)}")

    return jsonify({
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": serialize_user(_load_user(user_id))}
    })


@users_bp.route("/preferences", methods=["PUT"])
@jwt_required()
def update_preferences():
    user_id = int(get_jwt_identity())
    v = RequestValidator(request.get_json(silent=True))
    v.choice("currency", CURRENCIES, "Invalid currency", required=False)
    v.boolean("notifications", "Notifications must be boolean")
    v.boolean("biometricAuth", "Biometric auth must be boolean")
    v.boolean("darkMode", "Dark mode must be boolean")
    v.choice("language", LANGUAGES, "Invalid language", required=False)
    if not v.ok:
        return validation_failed(v.errors)

    if not _load_user(user_id):
        return _user_not_found()

    updates = {PREFERENCE_COLUMNS[k]: val for k, val in v.clean.items()}
    if updates:
        assignments = ", ".join(f"{col}=?" for col in updates)
        db.execute_db(
            f"UPDATE users SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=?",
            (*updates.values(), user_id)
        )

    return jsonify({
        "success": True,
        "message": "Preferences updated successfully",
        "data": {"user": serialize_user(_load_user(user_id))}
    })
