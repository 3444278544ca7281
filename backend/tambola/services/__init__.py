"""Game domain services: tickets, claims, registry and the command engine.

This package contains the transport-free game logic imported by the
socket handlers and HTTP routes.
"""
