"""
ZK AgentMesh Test Suite
=======================

Test organization:
- tests/unit/                     - Unit tests (mock proof backend, mock rail)
- tests/services/agent_registry/  - HTTP tests over ASGITransport

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
"""
