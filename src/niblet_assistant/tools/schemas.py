"""Typed argument records for the assistant's function tools.

The provider hands tool arguments over as untyped JSON. Each known tool gets a
pydantic model here; arguments are validated and coerced once at the dispatch
boundary, and the assistant's tool schema is generated from the same models.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

MealType = Literal[
    "Breakfast",
    "Morning Snack",
    "Lunch",
    "Afternoon Snack",
    "Dinner",
    "Evening Snack",
    "Other",
]

_MEAL_TYPES_BY_LOWER = {value.lower(): value for value in get_args(MealType)}


class ToolArgumentsError(Exception):
    """Tool arguments failed validation."""

    def __init__(self, tool_name: str, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.tool_name = tool_name
        self.cause = cause


def _normalize_meal_type(value: Any) -> Any:
    if isinstance(value, str):
        return _MEAL_TYPES_BY_LOWER.get(value.strip().lower(), value)
    return value


class LogMealArgs(BaseModel):
    """Log a meal with estimated calories and nutrition information"""

    model_config = ConfigDict(title="log_meal", extra="ignore")

    meal_name: str = Field(..., min_length=1, description="The name of the meal")
    meal_type: MealType = Field(..., description="Type of meal (breakfast, lunch, dinner, snack)")
    calories: float = Field(..., ge=0, description="Estimated calories")
    protein: Optional[float] = Field(default=None, ge=0, description="Protein in grams")
    carbs: Optional[float] = Field(default=None, ge=0, description="Carbohydrates in grams")
    fat: Optional[float] = Field(default=None, ge=0, description="Fat in grams")
    items: Optional[list[str]] = Field(default=None, description="List of food items in the meal")

    @field_validator("meal_type", mode="before")
    @classmethod
    def normalize_meal_type(cls, value: Any) -> Any:
        return _normalize_meal_type(value)


class LogWeightArgs(BaseModel):
    """Log the user's weight"""

    model_config = ConfigDict(title="log_weight", extra="ignore")

    weight: float = Field(..., gt=0, description="The user's weight in pounds")
    date: Optional[dt.date] = Field(
        default=None, description="The date of the weight measurement (YYYY-MM-DD format)"
    )


class GetNutritionInfoArgs(BaseModel):
    """Get nutrition information for a food item or meal"""

    model_config = ConfigDict(title="get_nutrition_info", extra="ignore")

    food_item: str = Field(..., min_length=1, description="The food item or meal to look up")
    serving_size: Optional[str] = Field(
        default=None, description="The serving size (e.g., '1 cup', '100g')"
    )


class UpdateMealArgs(BaseModel):
    """Update a meal the user already logged. Only the provided fields are changed."""

    model_config = ConfigDict(title="update_meal", extra="ignore")

    meal_id: str = Field(..., min_length=1, description="ID of the logged meal to update")
    meal_name: Optional[str] = Field(default=None, min_length=1, description="The name of the meal")
    meal_type: Optional[MealType] = Field(
        default=None, description="Type of meal (breakfast, lunch, dinner, snack)"
    )
    calories: Optional[float] = Field(default=None, ge=0, description="Estimated calories")
    protein: Optional[float] = Field(default=None, ge=0, description="Protein in grams")
    carbs: Optional[float] = Field(default=None, ge=0, description="Carbohydrates in grams")
    fat: Optional[float] = Field(default=None, ge=0, description="Fat in grams")
    items: Optional[list[str]] = Field(default=None, description="List of food items in the meal")

    @field_validator("meal_type", mode="before")
    @classmethod
    def normalize_meal_type(cls, value: Any) -> Any:
        return _normalize_meal_type(value)


class UpdateWeightArgs(BaseModel):
    """Update a weight entry the user already logged. Only the provided fields are changed."""

    model_config = ConfigDict(title="update_weight", extra="ignore")

    weight_id: str = Field(..., min_length=1, description="ID of the weight log entry to update")
    weight: Optional[float] = Field(default=None, gt=0, description="The corrected weight in pounds")
    date: Optional[dt.date] = Field(
        default=None, description="The corrected measurement date (YYYY-MM-DD format)"
    )


TOOL_ARGUMENT_MODELS: dict[str, type[BaseModel]] = {
    "log_meal": LogMealArgs,
    "log_weight": LogWeightArgs,
    "get_nutrition_info": GetNutritionInfoArgs,
    "update_meal": UpdateMealArgs,
    "update_weight": UpdateWeightArgs,
}


def parse_tool_arguments(tool_name: str, arguments: dict[str, Any]) -> BaseModel | None:
    """Validate raw arguments for a known tool.

    Returns None for tools without a typed record. Raises ToolArgumentsError
    when a known tool's arguments do not validate.
    """
    model = TOOL_ARGUMENT_MODELS.get(tool_name)
    if model is None:
        return None
    try:
        return model.model_validate(arguments)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise ToolArgumentsError(tool_name, problems, cause=e) from e
