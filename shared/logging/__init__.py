"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from shared.logging import get_logger, setup_logging

    setup_logging()
    logger = get_logger(__name__)

    logger.info("verification_proof_submitted", agent_id="agent-001", category="quality")

Evidence vectors (``*_scores``, ``*_flags``, ...) are redacted before rendering.
"""

from shared.logging.logger import bind_context, clear_context, get_logger, setup_logging


__all__ = [
    "get_logger",
    "setup_logging",
    "bind_context",
    "clear_context",
]
