"""
Shared authentication helpers.
Provides token creation and verification for bearer-authenticated routes.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Tuple, Optional
from flask import jsonify, request, Response
from dotenv import load_dotenv

# Load .env only once here
load_dotenv()

# Load secrets & configs
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is missing. Set it in .env")

TOKEN_EXPIRATION_MINUTES = int(os.getenv("TOKEN_EXPIRATION_MINUTES", 1440))  # Default 24 hours
JWT_ALGORITHM = "HS256"


# --- JWT CREATION ---
def create_token(user_id: int) -> str:
    """
    Generates a new JWT for a given user.

    Args:
        user_id (int): The unique ID of the user.

    Returns:
        str: Encoded JWT string. The subject claim holds the id as a string.
    """
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(user_id),
        "exp": now + timedelta(minutes=TOKEN_EXPIRATION_MINUTES),
        "iat": now
    }

    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _user_id_from_payload(payload: dict) -> Optional[int]:
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


def bearer_token_from_request() -> Optional[str]:
    """Return the raw token from ``Authorization: Bearer <token>``, if any."""
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


# --- JWT VALIDATION ---
def verify_token_from_request() -> Tuple[Optional[int], Optional[Response], Optional[int]]:
    """
    Verify the JWT in the Authorization header.

    Returns:
        tuple: (user_id, error_response, status_code)
               If successful, error_response and status_code are None.
               If failed, user_id is None.
    """
    token = bearer_token_from_request()
    if not token:
        return None, jsonify({"message": "missing token"}), 401

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None, jsonify({"message": "token expired"}), 401
    except jwt.InvalidTokenError:
        return None, jsonify({"message": "invalid token"}), 401

    user_id = _user_id_from_payload(payload)
    if user_id is None:
        return None, jsonify({"message": "invalid token"}), 401

    return user_id, None, None
