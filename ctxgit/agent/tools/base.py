"""Base class for agent tools."""

from abc import ABC, abstractmethod
from typing import Any


class Tool(ABC):
    """
    Abstract base class for agent tools.

    Tools are capabilities the agent can call with named arguments. Every
    tool returns a single human-readable text block.
    """

    _TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
    }

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in function calls."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """
        Execute the tool with given parameters.

        Args:
            **kwargs: Tool-specific parameters.

        Returns:
            String result of the tool execution.
        """
        pass

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Validate parameters against the JSON schema. Returns error list (empty if valid)."""
        schema = self.parameters or {}
        errors = []
        properties = schema.get("properties", {})

        for key in schema.get("required", []):
            if params.get(key) in (None, ""):
                errors.append(f"missing required {key}")

        for key, value in params.items():
            if value is None or key not in properties:
                continue
            prop = properties[key]
            expected = self._TYPE_MAP.get(prop.get("type"))
            # bool is an int subclass; keep them apart
            if expected and (not isinstance(value, expected) or (prop.get("type") in ("integer", "number") and isinstance(value, bool))):
                errors.append(f"{key} should be {prop.get('type')}")
                continue
            if "enum" in prop and value not in prop["enum"]:
                errors.append(f"{key} must be one of {prop['enum']}")
            if "minimum" in prop and isinstance(value, (int, float)) and value < prop["minimum"]:
                errors.append(f"{key} must be >= {prop['minimum']}")

        return errors

    def to_schema(self) -> dict[str, Any]:
        """Convert tool to OpenAI function schema format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
