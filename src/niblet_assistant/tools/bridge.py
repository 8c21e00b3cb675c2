"""Routes assistant tool calls to built-in handlers or the caller's dispatcher."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Union

from ..schemas import ToolCall, ToolOutput
from .schemas import ToolArgumentsError, parse_tool_arguments
from .updates import handle_update_meal, handle_update_weight

logger = logging.getLogger(__name__)

ToolResult = Dict[str, Any]
ToolDispatcher = Callable[[str, Dict[str, Any]], Union[Awaitable[ToolResult], ToolResult]]
BuiltinHandler = Callable[[str, Any], Awaitable[ToolResult]]

DEFAULT_BUILTINS: Dict[str, BuiltinHandler] = {
    "update_meal": handle_update_meal,
    "update_weight": handle_update_weight,
}


def parse_tool_call(raw: Any) -> ToolCall:
    """Build a ToolCall from the provider's ``required_action`` tool call object."""
    function = raw.function
    raw_arguments = function.arguments or "{}"
    try:
        arguments = json.loads(raw_arguments)
        valid = isinstance(arguments, dict)
    except (TypeError, ValueError):
        arguments, valid = {}, False

    if not valid:
        logger.warning("[TOOLS] Unparseable arguments for %s: %r", function.name, raw_arguments)
        arguments = {}

    return ToolCall(
        id=raw.id,
        function_name=function.name,
        arguments=arguments,
        arguments_valid=valid,
    )


def unknown_tool(tool_name: str) -> ToolResult:
    return {"success": False, "message": f"Unknown tool: {tool_name}"}


def no_handler(tool_name: str) -> ToolResult:
    return {"success": False, "message": f"No handler for {tool_name}"}


class ToolDispatchBridge:
    """Executes tool calls and shapes every outcome as ``{success, message, ...}``.

    ``update_meal`` and ``update_weight`` run against storage directly when a
    user id is known; everything else goes to the caller-supplied dispatcher.
    No exception escapes: a failing tool produces a failure result so the rest
    of the batch, and the run, carry on.
    """

    def __init__(self, builtins: Dict[str, BuiltinHandler] | None = None) -> None:
        self._builtins = dict(DEFAULT_BUILTINS if builtins is None else builtins)

    async def dispatch(
        self,
        call: ToolCall,
        dispatcher: ToolDispatcher | None,
        user_id: str | None = None,
    ) -> ToolResult:
        name = call.function_name
        logger.info("[TOOLS] Executing tool: %s", name)

        if not call.arguments_valid:
            return {"success": False, "message": f"Invalid arguments for {name}: expected a JSON object"}

        try:
            parsed = parse_tool_arguments(name, call.arguments)
        except ToolArgumentsError as e:
            logger.warning("[TOOLS] Invalid arguments for %s: %s", name, e)
            return {"success": False, "message": f"Invalid arguments for {name}: {e}"}

        try:
            handler = self._builtins.get(name)
            if handler is not None and user_id:
                result = await handler(user_id, parsed)
            elif dispatcher is None:
                return no_handler(name) if parsed is not None else unknown_tool(name)
            else:
                args = (
                    parsed.model_dump(mode="json", exclude_none=True)
                    if parsed is not None
                    else call.arguments
                )
                result = dispatcher(name, args)
                if inspect.isawaitable(result):
                    result = await result
        except Exception:
            logger.exception("[TOOLS] Error executing tool %s", name)
            return {"success": False, "message": f"Error executing {name}"}

        return _as_tool_result(result)

    async def dispatch_batch(
        self,
        calls: Iterable[ToolCall],
        dispatcher: ToolDispatcher | None,
        user_id: str | None = None,
    ) -> list[ToolOutput]:
        """Run a batch of independent tool calls concurrently.

        Returns exactly one output per call, in call order.
        """
        calls = list(calls)
        results = await asyncio.gather(
            *(self.dispatch(call, dispatcher, user_id) for call in calls)
        )
        return [
            ToolOutput(tool_call_id=call.id, output=json.dumps(result, default=str))
            for call, result in zip(calls, results)
        ]


def _as_tool_result(result: Any) -> ToolResult:
    if result is None:
        return {"success": False, "message": "Function execution failed"}
    if isinstance(result, dict):
        return result
    return {"success": True, "message": str(result)}
