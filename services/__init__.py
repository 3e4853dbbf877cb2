"""
ZK AgentMesh Services
=====================

Services:
- agent_registry: proof generation, verification registry, paid queries
  and proof inheritance over HTTP
"""

__all__ = [
    "agent_registry",
]
