"""
Shared Models
=============

Response envelopes shared across services. Domain models live with their
modules (``shared.zk.models``, ``shared.blockchain.models``).
"""

from shared.models.common import (
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
)


__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "PaginatedResponse",
]
