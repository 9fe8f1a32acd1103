"""Domain layer — schedules, window math, overrides and rule contexts.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
