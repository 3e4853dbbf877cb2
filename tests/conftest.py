"""
Test Configuration
==================

Pytest fixtures for ZK AgentMesh tests.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["ZK_BACKEND"] = "mock"
os.environ["PAYMENT_RAIL"] = "mock"

from shared.blockchain import (  # noqa: E402
    AgentRecord,
    LedgerContracts,
    create_contracts,
    reset_contracts,
    set_contracts,
)
from shared.config import settings  # noqa: E402
from shared.payments import MockPaymentRail, reset_payment_rail, set_payment_rail  # noqa: E402
from shared.storage import InMemoryObjectStore, set_object_store  # noqa: E402
from shared.zk import (  # noqa: E402
    REQUIRED_CATEGORIES,
    AgentProver,
    MockProofBackend,
    VerificationCategory,
    reset_proof_backend,
    set_proof_backend,
)


CREATOR = "0xcreator"
REQUESTER = "0xrequester"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def backend() -> MockProofBackend:
    return MockProofBackend(secret="test-proving-key")


@pytest.fixture
def payment_rail() -> MockPaymentRail:
    return MockPaymentRail(rejected_signatures={"bad-signature"})


@pytest.fixture
def contracts(backend: MockProofBackend, payment_rail: MockPaymentRail) -> LedgerContracts:
    """Fresh ledger with the three contracts deployed on it."""
    return create_contracts(backend=backend, payment_rail=payment_rail)


@pytest.fixture
def prover(backend: MockProofBackend) -> AgentProver:
    return AgentProver(backend=backend)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


# ============================================================================
# Evidence
# ============================================================================


@pytest.fixture
def quality_input() -> dict[str, Any]:
    """Average 906, every sample above 800."""
    return {
        "evidence": {"quality_scores": [900, 950, 870]},
        "thresholds": {"min_quality_threshold": 800},
    }


@pytest.fixture
def ethics_input() -> dict[str, Any]:
    return {
        "evidence": {
            "bias_scores": [100, 150, 120],
            "fairness_scores": [900, 880, 910],
            "harmful_content_flags": [0, 0, 0],
        },
        "thresholds": {
            "max_bias_threshold": 200,
            "min_fairness_score": 850,
            "max_harmful_rate": 0,
        },
    }


@pytest.fixture
def compliance_input() -> dict[str, Any]:
    """Privacy average 875, data types 0 and 2 permitted."""
    return {
        "evidence": {
            "privacy_scores": [850, 900],
            "data_handling_scores": [880, 860],
            "encryption_scores": [900, 950],
            "data_permission_flags": [1, 0, 1],
        },
        "thresholds": {
            "min_privacy_score": 800,
            "min_data_handling_score": 800,
        },
    }


@pytest.fixture
def capability_input() -> dict[str, Any]:
    """Query type 1 is supported with score 900 and coverage 850."""
    return {
        "evidence": {
            "capability_scores": [700, 900, 650],
            "training_coverage": [600, 850, 500],
            "support_flags": [1, 1, 0],
        },
        "thresholds": {
            "requested_query_type": 1,
            "min_capability_score": 800,
            "min_training_coverage": 800,
        },
    }


@pytest.fixture
def reputation_input() -> dict[str, Any]:
    """Two interactions, one error; reputation score 855."""
    return {
        "evidence": {
            "interaction_outcomes": [900, 800],
            "feedback_scores": [850, 750],
            "completion_rates": [1000, 900],
            "quality_scores": [800, 800],
            "bias_incidents": [0, 0],
            "error_flags": [0, 1],
        },
        "thresholds": {
            "min_interactions": 2,
            "min_reputation_score": 500,
        },
    }


@pytest.fixture
def category_inputs(
    quality_input: dict[str, Any],
    ethics_input: dict[str, Any],
    compliance_input: dict[str, Any],
    capability_input: dict[str, Any],
    reputation_input: dict[str, Any],
) -> dict[VerificationCategory, dict[str, Any]]:
    return {
        VerificationCategory.QUALITY: quality_input,
        VerificationCategory.ETHICS: ethics_input,
        VerificationCategory.COMPLIANCE: compliance_input,
        VerificationCategory.CAPABILITY: capability_input,
        VerificationCategory.REPUTATION: reputation_input,
    }


# ============================================================================
# Ledger Helpers
# ============================================================================


@pytest.fixture
def submit_category(
    contracts: LedgerContracts,
    prover: AgentProver,
    category_inputs: dict[VerificationCategory, dict[str, Any]],
) -> Callable[..., Awaitable[AgentRecord]]:
    """Prove one category for an agent and submit it to the registry."""

    async def _submit(
        agent_id: str,
        category: VerificationCategory,
        creator: str = CREATOR,
    ) -> AgentRecord:
        item = category_inputs[category]
        _, proof = await prover.prove_category(
            category,
            agent_id=agent_id,
            evidence=item["evidence"],
            thresholds=item["thresholds"],
            evidence_commitment=f"{agent_id}:{category.value}",
        )
        return await contracts.registry.submit_verification_proof(
            agent_id,
            category,
            proof.proof,
            proof.public_signals.to_int_list(),
            caller=creator,
            fee=settings.registry.verification_fee,
        )

    return _submit


@pytest.fixture
def verify_agent(
    contracts: LedgerContracts,
    submit_category: Callable[..., Awaitable[AgentRecord]],
) -> Callable[..., Awaitable[AgentRecord]]:
    """Register an agent and submit proofs for the given categories."""

    async def _verify(
        agent_id: str,
        creator: str = CREATOR,
        categories: Sequence[VerificationCategory] = REQUIRED_CATEGORIES,
    ) -> AgentRecord:
        await contracts.registry.register_agent(
            agent_id,
            metadata_ref=f"ref-{agent_id}",
            caller=creator,
            fee=settings.registry.registration_fee,
        )
        for category in categories:
            await submit_category(agent_id, category, creator)
        return contracts.registry.get_agent(agent_id)

    return _verify


# ============================================================================
# Service Clients
# ============================================================================


@pytest_asyncio.fixture
async def agent_registry_client(
    backend: MockProofBackend,
    payment_rail: MockPaymentRail,
    contracts: LedgerContracts,
    object_store: InMemoryObjectStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Agent Registry Service."""
    from services.agent_registry.main import app

    set_proof_backend(backend)
    set_payment_rail(payment_rail)
    set_contracts(contracts)
    set_object_store(object_store)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    reset_contracts()
    reset_payment_rail()
    reset_proof_backend()
    set_object_store(InMemoryObjectStore())
