"""Logging configuration models."""

from pydantic import BaseModel


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_channel_id: int = 0
