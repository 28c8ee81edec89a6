"""Entry point for running the Discord bot as a module.

Usage:
    python -m adapters.discord
"""

from adapters.discord.main import run

if __name__ == "__main__":
    run()
