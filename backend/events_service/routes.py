"""
Events service routes: list, read, create, update, delete events, and
save/unsave an event to the caller's list.

Mutations are restricted to the event's creator.
"""

import logging
import math
from datetime import date, datetime
from typing import Tuple, Dict, Any, Optional

from flask import Blueprint, request, jsonify, Response

from backend.database import events_store, users_store
from backend.database.events_store import VALID_CATEGORIES
from backend.auth_service.utils import verify_token_from_request

logger = logging.getLogger(__name__)

events_bp = Blueprint("events", __name__)

# --- CONSTANTS FOR VALIDATION ---
TITLE_MAX_LENGTH = 200
TIME_MAX_LENGTH = 20
LOCATION_MAX_LENGTH = 255
REQUIRED_FIELDS = ["title", "description", "date", "time", "location", "category"]
DEFAULT_IMAGE = "https://via.placeholder.com/300x200"

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100

SAVE_TOGGLE_MESSAGE = "Event saved/unsaved successfully"


def parse_date(val: Any) -> Optional[date]:
    """
    Parse 'YYYY-MM-DD' or a full ISO-8601 datetime string to a date.

    Returns:
        date: The parsed calendar date, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        return date.fromisoformat(val)
    except ValueError:
        pass
    try:
        # Handles '...THH:MM:SS.sssZ' as produced by browsers
        if val.endswith('Z'):
            val = val[:-1] + '+00:00'
        return datetime.fromisoformat(val).date()
    except ValueError:
        return None


def _iso(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


def serialize_event(row: Dict[str, Any], populate: bool = True) -> Dict[str, Any]:
    """
    Convert an events row to its JSON shape.

    With ``populate`` the creator is resolved to ``{id, username}``;
    without it ``createdBy`` is the bare owner id.
    """
    if populate:
        created_by: Any = {"id": row["created_by"], "username": row.get("creator_username")}
    else:
        created_by = row["created_by"]

    return {
        "id": row["event_id"],
        "title": row["title"],
        "description": row["description"],
        "date": _iso(row["date"]),
        "time": row["time"],
        "location": row["location"],
        "category": row["category"],
        "image": row.get("image"),
        "createdBy": created_by,
        "createdAt": _iso(row.get("created_at")),
        "updatedAt": _iso(row.get("updated_at")),
    }


def validate_event_fields(data: Dict[str, Any], partial: bool = False) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Validate an event body and pick out the writable fields.

    Args:
        data (dict): Request JSON.
        partial (bool): Update mode; only fields present are checked.

    Returns:
        tuple: (fields ready for the store, error message or None)
    """
    if not partial:
        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            return {}, f"Missing required fields: {', '.join(missing)}"

    fields: Dict[str, Any] = {}

    for key in ("title", "description", "time", "location"):
        if key not in data:
            continue
        value = data[key]
        if not isinstance(value, str) or not value.strip():
            return {}, f"{key} must be a non-empty string"
        fields[key] = value.strip()

    if len(fields.get("title", "")) > TITLE_MAX_LENGTH:
        return {}, f"Title must be {TITLE_MAX_LENGTH} characters or less."
    if len(fields.get("time", "")) > TIME_MAX_LENGTH:
        return {}, f"Time must be {TIME_MAX_LENGTH} characters or less."
    if len(fields.get("location", "")) > LOCATION_MAX_LENGTH:
        return {}, f"Location must be {LOCATION_MAX_LENGTH} characters or less."

    if "date" in data:
        parsed = parse_date(data["date"])
        if not parsed:
            return {}, "Invalid date format. Use YYYY-MM-DD."
        fields["date"] = parsed

    if "category" in data:
        if data["category"] not in VALID_CATEGORIES:
            return {}, f"category must be one of: {', '.join(VALID_CATEGORIES)}"
        fields["category"] = data["category"]

    if "image" in data:
        image = data["image"]
        if image is not None and not isinstance(image, str):
            return {}, "image must be a URL string"
        fields["image"] = image or DEFAULT_IMAGE
    elif not partial:
        fields["image"] = DEFAULT_IMAGE

    return fields, None


def is_owner(event: Dict[str, Any], user_id: Any) -> bool:
    """Compare creator and caller in canonical string form."""
    return str(event["created_by"]) == str(user_id)


def _positive_int_arg(name: str, default: int) -> Tuple[Optional[int], Optional[str]]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default, None
    try:
        value = int(raw)
    except ValueError:
        return None, f"{name} must be a positive integer"
    if value < 1:
        return None, f"{name} must be a positive integer"
    return value, None


@events_bp.route("", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return events sorted ascending by date, one page at a time.

    Query parameters:
    - category: exact match.
    - location: case-insensitive substring match.
    - createdBy: only events owned by this user id.
    - saved=true: only the caller's saved events (requires a bearer token).
    - page / limit: pagination (defaults 1 / 12, limit capped at 100).

    Returns:
        200: { events, page, limit, total, totalPages }
        400: Bad query parameter.
        401: saved=true without a valid token.
        500: Database error.
    """
    page, err_msg = _positive_int_arg("page", 1)
    if err_msg:
        return jsonify({"message": err_msg}), 400
    limit, err_msg = _positive_int_arg("limit", DEFAULT_PAGE_SIZE)
    if err_msg:
        return jsonify({"message": err_msg}), 400
    limit = min(limit, MAX_PAGE_SIZE)

    created_by = None
    if request.args.get("createdBy"):
        created_by, err_msg = _positive_int_arg("createdBy", 0)
        if err_msg:
            return jsonify({"message": err_msg}), 400

    category = request.args.get("category") or None
    location = (request.args.get("location") or "").strip() or None

    ids = None
    if request.args.get("saved", "").lower() in ("true", "1", "yes"):
        user_id, err, code = verify_token_from_request()
        if err:
            return err, code
        try:
            user = users_store.find_user_by_id(user_id)
        except Exception as e:
            logger.error(f"Database error loading user {user_id}: {e}", exc_info=True)
            return jsonify({"message": "Failed to retrieve events"}), 500
        if not user:
            return jsonify({"message": "User not found"}), 404
        ids = list(user.get("saved_events") or [])

    try:
        rows, total = events_store.find_events(
            category=category,
            location=location,
            created_by=created_by,
            ids=ids,
            page=page,
            limit=limit,
        )
    except Exception as e:
        logger.error(f"Database error listing events: {e}", exc_info=True)
        return jsonify({"message": "Failed to retrieve events"}), 500

    return jsonify({
        "events": [serialize_event(r) for r in rows],
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": max(1, math.ceil(total / limit)),
    }), 200


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    """
    Get a single event by ID, with the creator's username.

    Returns:
        200: Event object.
        404: Event not found.
        500: Database error.
    """
    try:
        event = events_store.find_event_by_id(event_id)
    except Exception as e:
        logger.error(f"Database error getting event {event_id}: {e}", exc_info=True)
        return jsonify({"message": "Failed to retrieve event"}), 500

    if not event:
        return jsonify({"message": "Event not found"}), 404

    return jsonify(serialize_event(event)), 200


@events_bp.route("", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event owned by the caller.

    Any createdBy in the body is ignored.

    Returns:
        201: The created event (createdBy is the owner id).
        400: Validation or persistence error.
        401: Missing or invalid token.
    """
    user_id, err, code = verify_token_from_request()
    if err:
        return err, code

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"message": "Request body must be a JSON object"}), 400

    fields, err_msg = validate_event_fields(data)
    if err_msg:
        return jsonify({"message": err_msg}), 400

    try:
        event = events_store.insert_event(fields, created_by=user_id)
    except Exception as e:
        logger.warning(f"Error creating event '{fields.get('title')}' for user {user_id}: {e}")
        return jsonify({"message": "Failed to create event"}), 400

    logger.info(f"Event '{event['title']}' (ID: {event['event_id']}) created by user {user_id}")
    return jsonify(serialize_event(event, populate=False)), 201


@events_bp.route("/<int:event_id>", methods=["PUT"])
def update_event(event_id: int) -> Tuple[Response, int]:
    """
    Merge the body into an event and refresh updatedAt.

    Permission: only the creator of the event.

    Returns:
        200: The updated event (createdBy is the owner id).
        400: Validation or persistence error.
        403: Caller is not the creator.
        404: Event not found.
    """
    user_id, err, code = verify_token_from_request()
    if err:
        return err, code

    try:
        event = events_store.find_event_by_id(event_id)
        if not event:
            return jsonify({"message": "Event not found"}), 404

        if not is_owner(event, user_id):
            logger.warning(f"User {user_id} attempted to update event {event_id} owned by user {event['created_by']}")
            return jsonify({"message": "Not authorized"}), 403

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"message": "Request body must be a JSON object"}), 400

        fields, err_msg = validate_event_fields(data, partial=True)
        if err_msg:
            return jsonify({"message": err_msg}), 400

        updated = events_store.update_event(event_id, fields)
        if not updated:
            return jsonify({"message": "Event not found"}), 404

    except Exception as e:
        logger.error(f"Database error updating event {event_id}: {e}", exc_info=True)
        return jsonify({"message": "Failed to update event"}), 400

    logger.info(f"Event {event_id} updated by user {user_id}")
    return jsonify(serialize_event(updated, populate=False)), 200


@events_bp.route("/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int) -> Tuple[Response, int]:
    """
    Delete an event if the caller is its creator.

    Users' saved lists are left untouched.

    Returns:
        200: { message: 'Event deleted' }
        403: Caller is not the creator.
        404: Event not found.
        500: Database error.
    """
    user_id, err, code = verify_token_from_request()
    if err:
        return err, code

    try:
        event = events_store.find_event_by_id(event_id)
        if not event:
            return jsonify({"message": "Event not found"}), 404

        if not is_owner(event, user_id):
            logger.warning(f"User {user_id} attempted to delete event {event_id} owned by user {event['created_by']}")
            return jsonify({"message": "Not authorized"}), 403

        if not events_store.delete_event(event_id):
            return jsonify({"message": "Event not found"}), 404

    except Exception as e:
        logger.error(f"Database error deleting event {event_id}: {e}", exc_info=True)
        return jsonify({"message": "Failed to delete event"}), 500

    logger.info(f"Event {event_id} deleted by user {user_id}")
    return jsonify({"message": "Event deleted"}), 200


@events_bp.route("/<int:event_id>/save", methods=["POST"])
def toggle_save(event_id: int) -> Tuple[Response, int]:
    """
    Add the event to the caller's savedEvents, or remove it if present.

    Returns:
        200: { message, saved } where saved is the resulting membership.
        404: Event or user not found.
        500: Database error.
    """
    user_id, err, code = verify_token_from_request()
    if err:
        return err, code

    try:
        event = events_store.find_event_by_id(event_id)
        if not event:
            return jsonify({"message": "Event not found"}), 404

        user = users_store.find_user_by_id(user_id)
        if not user:
            return jsonify({"message": "User not found"}), 404

        saved_events = list(user.get("saved_events") or [])
        target = event["event_id"]

        if target in saved_events:
            saved_events = [e for e in saved_events if e != target]
            saved = False
        else:
            saved_events.append(target)
            saved = True

        users_store.set_saved_events(user_id, saved_events)

    except Exception as e:
        logger.error(f"Database error toggling save of event {event_id} for user {user_id}: {e}", exc_info=True)
        return jsonify({"message": "Failed to save event"}), 500

    logger.info(f"User {user_id} {'saved' if saved else 'unsaved'} event {event_id}")
    return jsonify({"message": SAVE_TOGGLE_MESSAGE, "saved": saved}), 200
