"""OpenProject REST API configuration models."""

from pydantic import BaseModel


class OpenProjectSettings(BaseModel):
    base_url: str = ""
    api_key: str = ""
    timeout: float = 30.0
