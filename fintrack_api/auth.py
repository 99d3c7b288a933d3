# fintrack_api/auth.py

import hashlib
import logging
import secrets
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, get_jwt_identity, jwt_required
from werkzeug.security import check_password_hash, generate_password_hash

from . import db
from .users import serialize_user
from .validation import RequestValidator, validation_failed

logger = logging.getLogger("fintrack-api")

auth_bp = Blueprint("auth", __name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with this email exists, you will receive password reset instructions."
)
RESEND_MESSAGE = (
    "If an account with this email exists and is not verified, "
    "a new verification email has been sent."
)


# ---------------- Helpers ----------------
def _now():
    return datetime.now(timezone.utc)

def _is_expired(expires_at):
    if not expires_at:
        return True
    try:
        return datetime.fromisoformat(expires_at) <= _now()
    except ValueError:
        return True

def _hash_token(token):
    return hashlib.sha256(token.encode()).hexdigest()

def _mailer():
    return current_app.extensions["email_service"]

def issue_token(user):
    """30-day bearer token carrying the user id and email."""
    return create_access_token(
        identity=str(user["id"]),
        additional_claims={"email": user["email"]},
    )

def _new_verification_token():
    token = _mailer().generate_verification_token()
    expires = (_now() + current_app.config["EMAIL_VERIFICATION_TTL"]).isoformat()
    return token, expires


# ---------------- Registration & Verification ----------------
@auth_bp.route("/register", methods=["POST"])
def register():
    v = RequestValidator(request.get_json(silent=True))
    v.text("name", "Name must be between 2 and 50 characters", min_len=2, max_len=50)
    v.email("email", "Valid email is required")
    v.text("password", "Password must be at least 6 characters long", min_len=6)
    if not v.ok:
        return validation_failed(v.errors)

    name, email = v.clean["name"], v.clean["email"]
    # raw (unstripped) password is what gets hashed
    password = v.data["password"]

    existing = db.query_db("SELECT id FROM users WHERE email=?", (email,), one=True)
    if existing:
        logger.info(f"Registration rejected, email already in use: {email}")
        return jsonify({"success": False, "message": "User with this email already exists"}), 400

    token, expires = _new_verification_token()
    user_id = db.execute_db(
        """INSERT INTO users (name, email, password_hash, email_verification_token, email_verification_expires)
        VALUES (?, ?, ?, ?, ?)""",
        (name, email, generate_password_hash(password), token, expires)
    )
    logger.info(f"✅ User {user_id} registered, sending verification email")

    email_sent = _mailer().send_email_verification(email, name, token)
    if not email_sent:
        logger.warning(f"Verification email not sent for user {user_id}")

    return jsonify({
        "success": True,
        "message": "User registered successfully. Please check your email to verify your account.",
        "data": {
            "message": "A verification email has been sent to your email address.",
            "email": email,
            "emailSent": email_sent
        }
    }), 201


@auth_bp.route("/verify-email", methods=["POST"])
def verify_email():
    v = RequestValidator(request.get_json(silent=True))
    v.text("token", "Verification token is required")
    if not v.ok:
        return validation_failed(v.errors)

    user = db.query_db(
        "SELECT * FROM users WHERE email_verification_token=?", (v.clean["token"],), one=True
    )
    if not user or _is_expired(user["email_verification_expires"]):
        logger.warning("Email verification failed: invalid or expired token")
        return jsonify({"success": False, "message": "Invalid or expired verification token"}), 400

    db.execute_db(
        """UPDATE users SET is_email_verified=1, email_verification_token=NULL,
        email_verification_expires=NULL, updated_at=CURRENT_TIMESTAMP WHERE id=?""",
        (user["id"],)
    )
    user = db.query_db("SELECT * FROM users WHERE id=?", (user["id"],), one=True)
    logger.info(f"📧 Email verified for user {user['id']}")

    return jsonify({
        "success": True,
        "message": "Email verified successfully! You are now logged in.",
        "email": user["email"],
        "data": {"user": serialize_user(user), "token": issue_token(user)}
    })


@auth_bp.route("/resend-verification", methods=["POST"])
def resend_verification():
    v = RequestValidator(request.get_json(silent=True))
    v.email("email", "Valid email is required")
    if not v.ok:
        return validation_failed(v.errors)

    user = db.query_db("SELECT * FROM users WHERE email=?", (v.clean["email"],), one=True)
    if not user:
        return jsonify({"success": True, "message": RESEND_MESSAGE})

    if user["is_email_verified"]:
        return jsonify({
            "success": True,
            "message": "This email is already verified. You can log in normally."
        })

    token, expires = _new_verification_token()
    db.execute_db(
        """UPDATE users SET email_verification_token=?, email_verification_expires=?,
        updated_at=CURRENT_TIMESTAMP WHERE id=?""",
        (token, expires, user["id"])
    )
    email_sent = _mailer().send_email_verification(user["email"], user["name"], token)

    return jsonify({"success": True, "message": RESEND_MESSAGE, "data": {"emailSent": email_sent}})


# ---------------- Login ----------------
@auth_bp.route("/login", methods=["POST"])
def login():
    v = RequestValidator(request.get_json(silent=True))
    v.email("email", "Valid email is required")
    v.text("password", "Password is required", min_len=0)
    if not v.ok:
        return validation_failed(v.errors)

    user = db.query_db("SELECT * FROM users WHERE email=?", (v.clean["email"],), one=True)
    # same answer for unknown email and wrong password
    if not user or not check_password_hash(user["password_hash"], v.data["password"]):
        logger.info("Login failed: invalid credentials")
        return jsonify({"success": False, "message": "Invalid credentials"}), 401

    if not user["is_email_verified"]:
        logger.info(f"Login blocked, email not verified for user {user['id']}")
        return jsonify({
            "success": False,
            "message": "Please verify your email address before logging in. "
                       "Check your inbox for the verification email.",
            "emailVerificationRequired": True
        }), 401

    logger.info(f"🔑 User {user['id']} logged in")
    return jsonify({
        "success": True,
        "message": "Login successful",
        "data": {"user": serialize_user(user), "token": issue_token(user)}
    })


@auth_bp.route("/verify", methods=["GET"])
@jwt_required()
def verify_token():
    user_id = int(get_jwt_identity())
    user = db.query_db("SELECT * FROM users WHERE id=?", (user_id,), one=True)
    if not user:
        return jsonify({"success": False, "message": "User not found"}), 404
    return jsonify({"success": True, "data": {"user": serialize_user(user)}})


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    # tokens are stateless; the client drops its copy
    logger.info(f"User {get_jwt_identity()} logged out at {_now().isoformat()}")
    return jsonify({"success": True, "message": "Logged out successfully"})


# ---------------- Password Reset ----------------
@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    v = RequestValidator(request.get_json(silent=True))
    v.email("email", "Valid email is required")
    if not v.ok:
        return validation_failed(v.errors)

    user = db.query_db("SELECT * FROM users WHERE email=?", (v.clean["email"],), one=True)
    if not user or not user["is_email_verified"]:
        return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE})

    reset_token = secrets.token_hex(32)
    expires = (_now() + current_app.config["PASSWORD_RESET_TTL"]).isoformat()
    db.execute_db(
        """UPDATE users SET password_reset_token=?, password_reset_expires=?,
        updated_at=CURRENT_TIMESTAMP WHERE id=?""",
        (_hash_token(reset_token), expires, user["id"])
    )

    if not _mailer().send_password_reset(user["email"], user["name"], reset_token):
        logger.warning(f"Password reset email not sent for user {user['id']}")

    return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE})


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    v = RequestValidator(request.get_json(silent=True))
    v.text("token", "Reset token is required")
    v.text("password", "Password must be at least 6 characters long", min_len=6)
    if not v.ok:
        return validation_failed(v.errors)

    user = db.query_db(
        "SELECT * FROM users WHERE password_reset_token=?", (_hash_token(v.clean["token"]),), one=True
    )
    if not user or _is_expired(user["password_reset_expires"]):
        return jsonify({"success": False, "message": "Invalid or expired reset token"}), 400

    db.execute_db(
        """UPDATE users SET password_hash=?, password_reset_token=NULL, password_reset_expires=NULL,
        updated_at=CURRENT_TIMESTAMP WHERE id=?""",
        (generate_password_hash(v.data["password"]), user["id"])
    )
    logger.info(f"🔑 Password reset for user {user['id']}")

    return jsonify({
        "success": True,
        "message": "Password reset successfully. You can now log in with your new password."
    })
