"""Function tools exposed to the Niblet assistant."""

from __future__ import annotations

from typing import Any, Dict, List

from langchain_core.utils.function_calling import convert_to_openai_tool

from .bridge import ToolDispatchBridge, ToolDispatcher, parse_tool_call
from .schemas import TOOL_ARGUMENT_MODELS, ToolArgumentsError, parse_tool_arguments


def get_tool_definitions() -> List[Dict[str, Any]]:
    """Return the assistant's function tool schema, one entry per known tool."""

    return [convert_to_openai_tool(model) for model in TOOL_ARGUMENT_MODELS.values()]


def get_tool_names() -> List[str]:
    return list(TOOL_ARGUMENT_MODELS)


__all__ = [
    "ToolArgumentsError",
    "ToolDispatchBridge",
    "ToolDispatcher",
    "get_tool_definitions",
    "get_tool_names",
    "parse_tool_arguments",
    "parse_tool_call",
]
