"""
Agent Registry Service
======================

HTTP surface over the verification circuits and ledger contracts.

This service provides:
- Domain proof generation and orchestrated full verification
- Fee-gated agent registration and proof submission
- Paid queries with escrow and settlement
- Proof inheritance and royalty chains

Version: 0.1.0
"""

__version__ = "0.1.0"
