"""Bot persona configuration models."""

from pydantic import BaseModel


class BotSettings(BaseModel):
    name: str = "Arki"
    personality_file: str = ""
    personality: str = ""
