"""Firestore operations for meals, weight logs and user profiles.

Collections mirror the web app's layout:
    meals/{mealId}
    weightLogs/{weightLogId}
    userProfiles/{userId}
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

import firebase_admin
from firebase_admin import credentials, firestore

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

_app: firebase_admin.App | None = None

MEALS_COLLECTION = "meals"
WEIGHT_LOGS_COLLECTION = "weightLogs"
USER_PROFILES_COLLECTION = "userProfiles"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _as_datetime(value: date | datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _get_credentials(settings: Settings):
    """Get Firebase credentials from a service account key path or inline JSON."""
    key_path = settings.firebase_service_account_key
    if not key_path:
        return None

    path = Path(key_path).expanduser()
    if path.exists():
        return credentials.Certificate(str(path))

    try:
        key_data = json.loads(key_path)
        return credentials.Certificate(key_data)
    except json.JSONDecodeError:
        raise ValueError(f"Invalid service account key: {key_path}")


def _initialize_firebase(settings: Settings):
    """Initialize Firebase Admin SDK."""
    global _app
    if _app is not None:
        return _app

    if firebase_admin._apps:
        _app = firebase_admin.get_app()
        return _app

    cred = _get_credentials(settings)
    if cred:
        _app = firebase_admin.initialize_app(cred)
    else:
        # Fallback to application default credentials
        _app = firebase_admin.initialize_app()

    return _app


def get_firestore_client(settings: Settings | None = None):
    """Get a Firestore client, initializing Firebase if needed."""
    settings = settings or get_settings()
    _initialize_firebase(settings)
    return firestore.client()


def _get_document(collection: str, doc_id: str, settings: Settings | None) -> dict[str, Any] | None:
    db = get_firestore_client(settings)
    doc = db.collection(collection).document(doc_id).get()
    if not doc.exists:
        return None

    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def create_meal(
    user_id: str,
    meal: dict[str, Any],
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Create a meal document for a user. Returns the stored data with its id."""
    db = get_firestore_client(settings)

    now = _now_iso()
    meal_data = {
        **meal,
        "userId": user_id,
        "date": _as_datetime(meal.get("date")),
        "createdAt": now,
        "updatedAt": now,
    }
    _, doc_ref = db.collection(MEALS_COLLECTION).add(meal_data)

    logger.info(f"Created meal {doc_ref.id} for user {user_id}")
    return {**meal_data, "id": doc_ref.id}


def get_meal(meal_id: str, settings: Settings | None = None) -> dict[str, Any] | None:
    """Get a meal by ID."""
    return _get_document(MEALS_COLLECTION, meal_id, settings)


def update_meal(
    meal_id: str,
    updates: dict[str, Any],
    settings: Settings | None = None,
) -> None:
    """Apply a partial update to a meal."""
    db = get_firestore_client(settings)
    db.collection(MEALS_COLLECTION).document(meal_id).update(
        {**updates, "updatedAt": _now_iso()}
    )
    logger.info(f"Updated meal {meal_id} fields: {sorted(updates)}")


def update_user_profile(
    user_id: str,
    updates: dict[str, Any],
    settings: Settings | None = None,
) -> None:
    """Merge fields into a user's profile document."""
    db = get_firestore_client(settings)
    db.collection(USER_PROFILES_COLLECTION).document(user_id).set(
        {**updates, "updatedAt": _now_iso()},
        merge=True,
    )


def log_weight(
    user_id: str,
    weight: float,
    measured_on: date | datetime | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Record a weight measurement and mirror it onto the user's profile."""
    db = get_firestore_client(settings)

    entry = {
        "userId": user_id,
        "weight": weight,
        "date": _as_datetime(measured_on),
        "createdAt": _now_iso(),
    }
    _, doc_ref = db.collection(WEIGHT_LOGS_COLLECTION).add(entry)
    update_user_profile(user_id, {"currentWeight": weight}, settings)

    logger.info(f"Logged weight {weight} for user {user_id} ({doc_ref.id})")
    return {**entry, "id": doc_ref.id}


def get_weight_log(weight_id: str, settings: Settings | None = None) -> dict[str, Any] | None:
    """Get a weight log entry by ID."""
    return _get_document(WEIGHT_LOGS_COLLECTION, weight_id, settings)


def update_weight_log(
    weight_id: str,
    updates: dict[str, Any],
    settings: Settings | None = None,
) -> None:
    """Apply a partial update to a weight log entry."""
    db = get_firestore_client(settings)
    if "date" in updates:
        updates = {**updates, "date": _as_datetime(updates["date"])}
    db.collection(WEIGHT_LOGS_COLLECTION).document(weight_id).update(
        {**updates, "updatedAt": _now_iso()}
    )
    logger.info(f"Updated weight log {weight_id} fields: {sorted(updates)}")
