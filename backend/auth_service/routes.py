"""
User service route handlers.

Provides routes for:
- User registration
- User login
- Profile retrieval (/profile)

All JWT logic is delegated to `auth_service.utils`; all SQL to
`database.users_store`.
"""

import logging
from typing import Tuple, Dict, Any

import psycopg2.errors
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from flask import Blueprint, request, jsonify, Response

from backend.database import users_store
from backend.auth_service.utils import create_token, verify_token_from_request

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__)
ph = PasswordHasher()

PASSWORD_MIN_LENGTH = 6
USERNAME_MAX_LENGTH = 50


def serialize_user(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a users row into its public JSON shape.
    The password hash never leaves this function.
    """
    created_at = row.get("created_at")
    return {
        "id": row["user_id"],
        "username": row["username"],
        "email": row["email"],
        "savedEvents": list(row.get("saved_events") or []),
        "createdAt": created_at.isoformat() if created_at else None,
    }


# --- REQUEST LOGGING ---
@users_bp.before_request
def before_request() -> None:
    """
    Log every incoming request to the user service.
    The Authorization header is redacted.
    """
    headers = {k: ("<redacted>" if k.lower() == "authorization" else v) for k, v in request.headers.items()}
    logger.info(f"[Users] Incoming {request.method} {request.path} Headers={headers}")


@users_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logger.info(f"[Users] Response {response.status}")
    return response


# --- REGISTER ---
@users_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new user.

    Expects a JSON body with:
    - username (str): Unique display name.
    - email (str): Unique email address.
    - password (str): Minimum 6 characters.

    Returns:
        201: JSON with a new JWT token and the user.
        400: Missing fields, invalid input, or user already exists.
        500: Server-side error (hashing or database).
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    username: str = (data.get("username") or "").strip()
    email: str = (data.get("email") or "").strip().lower()
    password: str = data.get("password") or ""

    if not username or not email or not password:
        return jsonify({"message": "Username, email and password are required"}), 400
    if len(username) > USERNAME_MAX_LENGTH:
        return jsonify({"message": f"Username must be {USERNAME_MAX_LENGTH} characters or less"}), 400
    if len(password) < PASSWORD_MIN_LENGTH:
        return jsonify({"message": f"Password must be at least {PASSWORD_MIN_LENGTH} characters"}), 400

    try:
        pw_hash = ph.hash(password)
    except Exception as e:
        logger.error(f"Password hashing failed: {e}", exc_info=True)
        return jsonify({"message": "Registration failed"}), 500

    try:
        user = users_store.insert_user(username, email, pw_hash)
    except psycopg2.errors.UniqueViolation:
        logger.warning(f"Registration attempt with existing email or username: {email}")
        return jsonify({"message": "User already exists"}), 400
    except Exception as e:
        logger.error(f"Database error registering {email}: {e}", exc_info=True)
        return jsonify({"message": "Registration failed"}), 500

    # Initial token for immediate login
    token = create_token(user["user_id"])
    logger.info(f"User registered: {email} (ID: {user['user_id']})")

    return jsonify({"token": token, "user": serialize_user(user)}), 201


# --- LOGIN ---
@users_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Expects a JSON body with:
    - email (str)
    - password (str)

    Returns:
        200: JSON with JWT token and the user.
        400: Missing or invalid credentials.
        500: Database error.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    email: str = (data.get("email") or "").strip().lower()
    password: str = data.get("password") or ""

    if not email or not password:
        return jsonify({"message": "Email and password are required"}), 400

    try:
        user = users_store.find_user_by_email(email)
    except Exception as e:
        logger.error(f"Database error during login for {email}: {e}", exc_info=True)
        return jsonify({"message": "Login failed"}), 500

    if not user:
        logger.warning(f"Failed login attempt for email: {email}")
        return jsonify({"message": "Invalid credentials"}), 400

    try:
        ph.verify(user["password_hash"], password)
    except (VerificationError, InvalidHashError):
        logger.warning(f"Failed login attempt for email: {email}")
        return jsonify({"message": "Invalid credentials"}), 400

    token = create_token(user["user_id"])
    logger.info(f"User logged in: {email}")

    return jsonify({"token": token, "user": serialize_user(user)}), 200


# --- GET CURRENT USER ---
@users_bp.route("/profile", methods=["GET"])
def get_profile() -> Tuple[Response, int]:
    """
    Retrieve the current user's profile, including savedEvents.

    Requires Authorization header: Bearer <token>

    Returns:
        200: User profile object.
        401: Authentication failure.
        404: User not found in DB (deleted after the token was issued).
        500: Database error.
    """
    user_id, err, code = verify_token_from_request()
    if err:
        return err, code

    try:
        user = users_store.find_user_by_id(user_id)
    except Exception as e:
        logger.error(f"Database error fetching profile {user_id}: {e}", exc_info=True)
        return jsonify({"message": "Could not retrieve user"}), 500

    if not user:
        return jsonify({"message": "User not found"}), 404

    return jsonify(serialize_user(user)), 200
