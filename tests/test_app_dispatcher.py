"""Tests for the Firestore-backed application tool dispatcher."""

from __future__ import annotations

import datetime as dt
from unittest.mock import patch

import pytest

from niblet_assistant.tools.app_dispatcher import build_app_tool_dispatcher


class TestAppToolDispatcher:
    """Tests for build_app_tool_dispatcher."""

    @pytest.mark.asyncio
    @patch("niblet_assistant.tools.app_dispatcher.create_meal")
    async def test_log_meal(self, mock_create_meal):
        """Should store the meal with defaults for missing macros."""
        mock_create_meal.return_value = {"id": "meal_1"}
        dispatch = build_app_tool_dispatcher("user-123")

        result = await dispatch(
            "log_meal",
            {"meal_name": "Burrito", "meal_type": "Lunch", "calories": 700.0, "protein": 30.0},
        )

        mock_create_meal.assert_called_once_with(
            "user-123",
            {
                "name": "Burrito",
                "calories": 700.0,
                "protein": 30.0,
                "carbs": 0,
                "fat": 0,
                "mealType": "Lunch",
                "items": [],
                "canEdit": True,
            },
        )
        assert result == {
            "success": True,
            "mealId": "meal_1",
            "message": "Logged Burrito (700.0 calories)",
        }

    @pytest.mark.asyncio
    @patch("niblet_assistant.tools.app_dispatcher.log_weight")
    async def test_log_weight_with_date(self, mock_log_weight):
        """Should parse the measurement date before storing."""
        mock_log_weight.return_value = {"id": "w_1"}
        dispatch = build_app_tool_dispatcher("user-123")

        result = await dispatch("log_weight", {"weight": 181.0, "date": "2024-05-04"})

        mock_log_weight.assert_called_once_with("user-123", 181.0, dt.date(2024, 5, 4))
        assert result["weightId"] == "w_1"
        assert result["message"] == "Logged weight: 181.0 lbs"

    @pytest.mark.asyncio
    @patch("niblet_assistant.tools.app_dispatcher.log_weight")
    async def test_log_weight_without_date(self, mock_log_weight):
        """Should let storage default the date."""
        mock_log_weight.return_value = {"id": "w_2"}
        dispatch = build_app_tool_dispatcher("user-123")

        await dispatch("log_weight", {"weight": 175.0})

        mock_log_weight.assert_called_once_with("user-123", 175.0, None)

    @pytest.mark.asyncio
    async def test_nutrition_info_is_acknowledged(self):
        """Should answer get_nutrition_info with a stubbed acknowledgement."""
        dispatch = build_app_tool_dispatcher("user-123")

        result = await dispatch("get_nutrition_info", {"food_item": "banana"})

        assert result == {"success": True, "message": "Nutrition info retrieved (stubbed)."}

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        """Should report tools it has no handler for."""
        dispatch = build_app_tool_dispatcher("user-123")

        result = await dispatch("order_pizza", {})

        assert result == {"success": False, "message": "Unknown tool: order_pizza"}
