"""What the completion endpoint is told about a tool."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class ToolSchema:
    """Name, description and JSON Schema of one tool's arguments."""

    name: str
    description: str
    parameters: dict[str, Any]

    @classmethod
    def from_args_model(cls, name: str, description: str, args_model: type[BaseModel]) -> ToolSchema:
        """Derive the parameter schema from a pydantic arguments model."""
        parameters = args_model.model_json_schema()
        parameters.pop("title", None)
        parameters.setdefault("properties", {})
        return cls(name=name, description=description, parameters=parameters)

    def to_openai(self) -> dict[str, Any]:
        """``{"type": "function", "function": {...}}`` entry for the ``tools`` request field."""
        return {"type": "function", "function": asdict(self)}
