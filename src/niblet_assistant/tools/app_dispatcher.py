"""Tool dispatcher used by the HTTP layer: logs meals and weights to Firestore."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Any, Dict

from ..storage.firestore import create_meal, log_weight
from .bridge import ToolDispatcher, unknown_tool

logger = logging.getLogger(__name__)


def build_app_tool_dispatcher(user_id: str) -> ToolDispatcher:
    """Return a dispatcher bound to ``user_id``.

    Arguments arrive already validated by the bridge, so known keys can be read
    directly. Storage errors propagate and are turned into failure results by
    the bridge.
    """

    async def dispatch(tool_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        if tool_name == "log_meal":
            meal = await asyncio.to_thread(
                create_meal,
                user_id,
                {
                    "name": args["meal_name"],
                    "calories": args["calories"],
                    "protein": args.get("protein") or 0,
                    "carbs": args.get("carbs") or 0,
                    "fat": args.get("fat") or 0,
                    "mealType": args["meal_type"],
                    "items": args.get("items") or [],
                    "canEdit": True,
                },
            )
            return {
                "success": True,
                "mealId": meal["id"],
                "message": f"Logged {args['meal_name']} ({args['calories']} calories)",
            }

        if tool_name == "log_weight":
            measured_on = dt.date.fromisoformat(args["date"]) if args.get("date") else None
            entry = await asyncio.to_thread(log_weight, user_id, args["weight"], measured_on)
            return {
                "success": True,
                "weightId": entry["id"],
                "message": f"Logged weight: {args['weight']} lbs",
            }

        if tool_name == "get_nutrition_info":
            return {"success": True, "message": "Nutrition info retrieved (stubbed)."}

        logger.warning("[TOOLS] App dispatcher has no handler for %s", tool_name)
        return unknown_tool(tool_name)

    return dispatch
