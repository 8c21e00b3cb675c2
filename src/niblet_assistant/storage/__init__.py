"""Persistence for meals, weight logs and profiles."""

from .firestore import (
    create_meal,
    get_firestore_client,
    get_meal,
    get_weight_log,
    log_weight,
    update_meal,
    update_user_profile,
    update_weight_log,
)

__all__ = [
    "create_meal",
    "get_firestore_client",
    "get_meal",
    "get_weight_log",
    "log_weight",
    "update_meal",
    "update_user_profile",
    "update_weight_log",
]
