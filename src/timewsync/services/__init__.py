"""Service layer: the sync engine, tag history, and command dispatch.

Services may import from domain, infrastructure, and plugins.
They must never import from commands or output.
"""
