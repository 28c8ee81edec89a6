"""Agent loop budget configuration models."""

from pydantic import BaseModel


class AgentSettings(BaseModel):
    max_iterations: int = 3
    openproject_max_iterations: int = 5
    identifier_extension: int = 2
    summary_iterations: int = 2
    image_cache_size: int = 100
