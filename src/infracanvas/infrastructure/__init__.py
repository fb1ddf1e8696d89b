"""Infrastructure layer: sandboxed filesystem and subprocess execution.

This layer depends on stdlib and third-party libs (pydantic, structlog).
It must never import from domain, services, commands, or output.
The service layer bridges between domain models and infrastructure.
"""
