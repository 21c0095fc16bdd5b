"""Domain layer: timer state, tag rules, and command contracts.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, plugins, commands, or config.
"""
