"""
Agent Registry Routes
=====================

API route handlers for the agent registry service.
"""

from services.agent_registry.routes import agents, proofs, queries


__all__ = ["agents", "proofs", "queries"]
