"""
Tool registry for the Speckit GitHub MCP Server.

Holds named tool definitions, validates structured input against each
tool's schema and guarantees that every failure leaving a tool is a
classified error.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from loguru import logger
from pydantic import BaseModel, ValidationError

from ..exceptions import ClassifiedError, ErrorKind, classify_exception
from ..validation import sanitize_for_logging


@dataclass
class ToolDefinition:
    """A named operation exposed to MCP clients."""
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[Any], Awaitable[Dict[str, Any]]]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ToolRegistry:
    """Registry of tool definitions keyed by name."""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool; a later registration with the same name wins."""
        if tool.name in self._tools:
            logger.warning(f"Replacing existing MCP tool registration: {tool.name}")
        else:
            logger.info(f"Registering MCP tool: {tool.name}")
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> bool:
        logger.info(f"Unregistering MCP tool: {name}")
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list_tools(self) -> List[str]:
        return list(self._tools)

    def describe(self) -> List[Dict[str, str]]:
        return [{"name": tool.name, "description": tool.description} for tool in self._tools.values()]

    def validate(self, tool: ToolDefinition, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        """
        Validate tool arguments against the tool's input model.

        Raises:
            ClassifiedError: TASK_VALIDATION listing every invalid field
        """
        try:
            return tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            raise ClassifiedError(
                ErrorKind.TASK_VALIDATION,
                f"Invalid input for tool '{tool.name}'",
                details={"tool": tool.name, "errors": errors}
            )

    async def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Validate input and run a tool.

        Returns:
            The tool payload with a response timestamp, or a not-found payload
            for unregistered names

        Raises:
            ClassifiedError: any failure, classified
        """
        tool = self.get(name)
        if tool is None:
            logger.warning(f"Tool '{name}' not found")
            return {"success": False, "error": f"Tool '{name}' not found", "timestamp": utc_timestamp()}

        logger.debug(f"Executing MCP tool {name} with {sanitize_for_logging(arguments or {})}")
        validated = self.validate(tool, arguments)

        try:
            result = await tool.handler(validated)
        except Exception as e:
            error = classify_exception(e, {"tool": name})
            logger.error(f"MCP tool {name} failed: {error.kind.value} {error.message}")
            raise error

        result.setdefault("timestamp", utc_timestamp())
        logger.debug(f"MCP tool {name} executed successfully")
        return result
