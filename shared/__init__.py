"""
ZK AgentMesh Shared Library
===========================

Verification circuits, ledger contracts and common plumbing for certifying
AI agents with zero-knowledge proofs.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - zk: Field primitives, domain verifiers, orchestrator and provers
    - blockchain: Ledger, verification registry, query processor, royalties
    - storage: Content-addressed object store interface
    - payments: Payment rail interface
    - models: Shared Pydantic models

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "ZK AgentMesh Team"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
