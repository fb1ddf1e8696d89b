"""Domain layer: canvas models, resource expansion, HCL rendering.

This layer depends only on stdlib, pydantic and NetworkX.
It must never import from services, infrastructure, commands, or config.
Every function here is pure: no I/O, no clocks except injected ones.
"""
