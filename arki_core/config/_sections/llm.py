"""LLM provider configuration models."""

from pydantic import BaseModel


class LLMSettings(BaseModel):
    base_url: str = "https://openrouter.ai/api/v1"
    api_key: str = ""
    model: str = "mistralai/mistral-7b-instruct"
    max_tokens: int = 8192
    timeout: float = 120.0
