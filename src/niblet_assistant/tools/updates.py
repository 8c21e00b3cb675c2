"""Built-in handlers for correcting meals and weight entries the user already logged."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..storage.firestore import get_meal, get_weight_log, update_meal, update_weight_log
from .schemas import UpdateMealArgs, UpdateWeightArgs

logger = logging.getLogger(__name__)

# tool argument name -> Firestore field name
MEAL_FIELDS = {
    "meal_name": "name",
    "meal_type": "mealType",
    "calories": "calories",
    "protein": "protein",
    "carbs": "carbs",
    "fat": "fat",
    "items": "items",
}

WEIGHT_FIELDS = {
    "weight": "weight",
    "date": "date",
}


def _partial_update(args: Any, id_field: str, field_map: dict[str, str]) -> dict[str, Any]:
    provided = args.model_dump(exclude_unset=True, exclude={id_field})
    return {field_map[key]: value for key, value in provided.items() if value is not None}


async def handle_update_meal(user_id: str, args: UpdateMealArgs) -> dict[str, Any]:
    """Update the fields the assistant supplied on one of the user's meals."""
    logger.info("[UPDATE_MEAL] user_id=%s meal_id=%s", user_id, args.meal_id)

    updates = _partial_update(args, "meal_id", MEAL_FIELDS)
    if not updates:
        return {"success": False, "message": "No meal fields were provided to update."}

    meal = await asyncio.to_thread(get_meal, args.meal_id)
    if meal is None:
        return {"success": False, "message": f"Meal {args.meal_id} not found."}
    if meal.get("userId") != user_id:
        logger.warning(
            "[UPDATE_MEAL] Meal %s is not owned by user %s", args.meal_id, user_id
        )
        return {"success": False, "message": "You can only update your own meals."}

    await asyncio.to_thread(update_meal, args.meal_id, updates)

    name = updates.get("name") or meal.get("name") or "meal"
    return {
        "success": True,
        "mealId": args.meal_id,
        "updatedFields": sorted(updates),
        "message": f"Updated {name}.",
    }


async def handle_update_weight(user_id: str, args: UpdateWeightArgs) -> dict[str, Any]:
    """Update the fields the assistant supplied on one of the user's weight entries."""
    logger.info("[UPDATE_WEIGHT] user_id=%s weight_id=%s", user_id, args.weight_id)

    updates = _partial_update(args, "weight_id", WEIGHT_FIELDS)
    if not updates:
        return {"success": False, "message": "No weight fields were provided to update."}

    entry = await asyncio.to_thread(get_weight_log, args.weight_id)
    if entry is None:
        return {"success": False, "message": f"Weight entry {args.weight_id} not found."}
    if entry.get("userId") != user_id:
        logger.warning(
            "[UPDATE_WEIGHT] Weight entry %s is not owned by user %s", args.weight_id, user_id
        )
        return {"success": False, "message": "You can only update your own weight entries."}

    await asyncio.to_thread(update_weight_log, args.weight_id, updates)

    weight = updates.get("weight", entry.get("weight"))
    return {
        "success": True,
        "weightId": args.weight_id,
        "updatedFields": sorted(updates),
        "message": f"Updated weight entry to {weight} lbs.",
    }
