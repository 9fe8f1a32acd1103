"""Infrastructure layer — document model, timers, solar data, persistence.

This layer depends on stdlib and third-party libs (astral, pydantic).
It may import domain models; it must never import from services,
rules, commands, or output.
"""
