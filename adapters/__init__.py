"""Platform adapters for Arki.

Available adapters:
    - discord: the Pycord bot (adapters.discord.main.ArkiBot)
"""
