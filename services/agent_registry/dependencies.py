"""
Agent Registry Dependencies
===========================

FastAPI dependencies resolving the caller and the shared collaborators.

Version: 0.1.0
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from shared.blockchain import LedgerContracts, get_contracts
from shared.config import settings
from shared.logging import get_logger
from shared.storage import ObjectStore, get_object_store
from shared.zk import AgentProver, VerificationOrchestrator


logger = get_logger(__name__)


async def get_caller(
    x_caller_address: Annotated[str | None, Header()] = None,
) -> str:
    """
    Resolve the calling account from the ``X-Caller-Address`` header.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if x_caller_address is None or not x_caller_address.strip():
        logger.warning("caller_address_missing")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Caller-Address header is required",
        )
    return x_caller_address.strip()


def get_prover() -> AgentProver:
    return AgentProver()


def get_orchestrator() -> VerificationOrchestrator:
    return VerificationOrchestrator(bit_width=settings.zk.bit_width)


Caller = Annotated[str, Depends(get_caller)]
Contracts = Annotated[LedgerContracts, Depends(get_contracts)]
Store = Annotated[ObjectStore, Depends(get_object_store)]
Prover = Annotated[AgentProver, Depends(get_prover)]
Orchestrator = Annotated[VerificationOrchestrator, Depends(get_orchestrator)]
