"""Process-level configuration for Arki.

Submodules:
- config.bot: Bot persona and base system prompt
- config.logging: Logging setup with console and Discord handlers
"""

# Import directly from submodules as needed:
#   from config.bot import PERSONALITY, BOT_NAME
#   from config.logging import init_logging, get_logger
