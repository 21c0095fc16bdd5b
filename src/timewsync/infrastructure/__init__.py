"""Infrastructure layer: external-tool invocation and output parsing.

This layer depends on stdlib and the domain layer.
It must never import from services, plugins, commands, or output.
The service layer translates infrastructure errors into domain outcomes.
"""
