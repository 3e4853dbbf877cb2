"""
Agent Registry Service API Tests
"""

from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from shared.payments import MockPaymentRail, PaymentRailError
from shared.zk import REQUIRED_CATEGORIES, VerificationCategory


AGENT = "agent-001"
CREATOR = {"X-Caller-Address": "0xcreator"}
REQUESTER = {"X-Caller-Address": "0xrequester"}

METADATA = {
    "name": "Contract Reviewer",
    "developer": "Acme Labs",
    "training_standards": ["iso-42001"],
}


async def _register(
    client: AsyncClient,
    agent_id: str = AGENT,
    headers: dict[str, str] = CREATOR,
    metadata: dict[str, Any] = METADATA,
) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/agents",
        json={"agent_id": agent_id, "metadata": metadata},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


async def _generate(
    client: AsyncClient,
    category: VerificationCategory,
    item: dict[str, Any],
    agent_id: str = AGENT,
) -> dict[str, Any]:
    response = await client.post(
        f"/api/v1/proofs/{category.value}",
        json={"agent_id": agent_id, **item},
    )
    assert response.status_code == 200
    return response.json()


async def _submit(
    client: AsyncClient,
    category: VerificationCategory,
    generated: dict[str, Any],
    agent_id: str = AGENT,
    headers: dict[str, str] = CREATOR,
):
    return await client.post(
        "/api/v1/proofs/submit",
        json={
            "agent_id": agent_id,
            "category": category.value,
            "proof": generated["proof"],
            "public_signals": generated["public_signals"],
        },
        headers=headers,
    )


async def _verify_fully(
    client: AsyncClient,
    category_inputs: dict[VerificationCategory, dict[str, Any]],
    agent_id: str = AGENT,
    headers: dict[str, str] = CREATOR,
) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for category in REQUIRED_CATEGORIES:
        generated = await _generate(client, category, category_inputs[category], agent_id)
        response = await _submit(client, category, generated, agent_id, headers)
        assert response.status_code == 200
        body = response.json()
    return body


async def _ready_for_queries(
    client: AsyncClient,
    category_inputs: dict[VerificationCategory, dict[str, Any]],
) -> None:
    await _register(client)
    await _verify_fully(client, category_inputs)
    response = await client.put(
        f"/api/v1/queries/capabilities/{AGENT}",
        json={"supported_types": [1, 2], "base_price": "100", "complexity_multiplier": "10"},
        headers=CREATOR,
    )
    assert response.status_code == 200


class TestAgents:
    """Tests for registration and discovery."""

    @pytest.mark.asyncio
    async def test_caller_header_required(self, agent_registry_client: AsyncClient) -> None:
        response = await agent_registry_client.post(
            "/api/v1/agents",
            json={"agent_id": AGENT, "metadata": METADATA},
        )

        assert response.status_code == 401
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_register_and_get(self, agent_registry_client: AsyncClient) -> None:
        registered = await _register(agent_registry_client)

        assert registered["creator"] == "0xcreator"
        assert registered["fully_verified"] is False
        assert registered["block_number"] == 1001

        response = await agent_registry_client.get(f"/api/v1/agents/{AGENT}")

        assert response.status_code == 200
        data = response.json()
        assert data["metadata"]["name"] == "Contract Reviewer"
        assert data["metadata_intact"] is True
        assert data["agent"]["metadata_ref"] == registered["metadata_ref"]

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, agent_registry_client: AsyncClient) -> None:
        await _register(agent_registry_client)

        response = await agent_registry_client.post(
            "/api/v1/agents",
            json={"agent_id": AGENT, "metadata": METADATA},
            headers={"X-Caller-Address": "0xother"},
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "ALREADY_REGISTERED"

    @pytest.mark.asyncio
    async def test_insufficient_fee(self, agent_registry_client: AsyncClient) -> None:
        response = await agent_registry_client.post(
            "/api/v1/agents",
            json={"agent_id": AGENT, "metadata": METADATA, "fee": "0.001"},
            headers=CREATOR,
        )

        assert response.status_code == 402

        # Not indexed for discovery
        search = await agent_registry_client.get("/api/v1/agents/search")
        assert search.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_unknown_agent(self, agent_registry_client: AsyncClient) -> None:
        response = await agent_registry_client.get("/api/v1/agents/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "AGENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_search(self, agent_registry_client: AsyncClient) -> None:
        await _register(agent_registry_client)
        await _register(
            agent_registry_client,
            agent_id="agent-002",
            metadata={"name": "Translator", "developer": "Globex", "training_standards": ["soc2"]},
        )

        by_name = await agent_registry_client.get("/api/v1/agents/search", params={"name": "review"})
        by_tag = await agent_registry_client.get("/api/v1/agents/search", params={"tags": ["soc2"]})

        assert by_name.status_code == 200
        assert [a["agent_id"] for a in by_name.json()["items"]] == [AGENT]
        assert [a["agent_id"] for a in by_tag.json()["items"]] == ["agent-002"]

    @pytest.mark.asyncio
    async def test_deactivate(self, agent_registry_client: AsyncClient) -> None:
        await _register(agent_registry_client)

        forbidden = await agent_registry_client.post(
            f"/api/v1/agents/{AGENT}/deactivate", headers=REQUESTER
        )
        response = await agent_registry_client.post(
            f"/api/v1/agents/{AGENT}/deactivate", headers=CREATOR
        )

        assert forbidden.status_code == 403
        assert response.status_code == 200
        assert response.json()["active"] is False


class TestProofs:
    """Tests for proof generation and submission."""

    @pytest.mark.asyncio
    async def test_generate_proof(
        self,
        agent_registry_client: AsyncClient,
        quality_input: dict[str, Any],
    ) -> None:
        body = await _generate(agent_registry_client, VerificationCategory.QUALITY, quality_input)

        assert body["verified"] is True
        assert body["levels"]["average_quality"] == 906
        assert body["proof_hash"].startswith("0x")
        assert body["public_signals"][0] == "1"
        assert body["salt"]

    @pytest.mark.asyncio
    async def test_invalid_evidence(self, agent_registry_client: AsyncClient) -> None:
        response = await agent_registry_client.post(
            "/api/v1/proofs/quality",
            json={
                "agent_id": AGENT,
                "evidence": {"quality_scores": [2000]},
                "thresholds": {"min_quality_threshold": 800},
            },
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_full_verification_flow(
        self,
        agent_registry_client: AsyncClient,
        category_inputs: dict[VerificationCategory, dict[str, Any]],
    ) -> None:
        await _register(agent_registry_client)

        body = await _verify_fully(agent_registry_client, category_inputs)

        assert body["fully_verified"] is True
        assert body["submission_count"] == 4
        assert body["master_proof_hash"].startswith("0x")

        response = await agent_registry_client.get(f"/api/v1/agents/{AGENT}/status")
        status = response.json()
        assert status["fully_verified"] is True
        assert status["quality_verified"] and status["capability_verified"]
        assert status["reputation_score"] == 670

    @pytest.mark.asyncio
    async def test_failed_evaluation_not_accepted(self, agent_registry_client: AsyncClient) -> None:
        await _register(agent_registry_client)
        generated = await _generate(
            agent_registry_client,
            VerificationCategory.QUALITY,
            {
                "evidence": {"quality_scores": [900, 950, 700]},
                "thresholds": {"min_quality_threshold": 800},
            },
        )
        assert generated["verified"] is False

        response = await _submit(agent_registry_client, VerificationCategory.QUALITY, generated)

        assert response.status_code == 409
        assert response.json()["error_code"] == "PRECONDITION_FAILED"

    @pytest.mark.asyncio
    async def test_lenient_threshold_not_accepted(self, agent_registry_client: AsyncClient) -> None:
        await _register(agent_registry_client)
        generated = await _generate(
            agent_registry_client,
            VerificationCategory.QUALITY,
            {
                "evidence": {"quality_scores": [5, 3]},
                "thresholds": {"min_quality_threshold": 0},
            },
        )
        assert generated["verified"] is True

        response = await _submit(agent_registry_client, VerificationCategory.QUALITY, generated)

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PROOF"

    @pytest.mark.asyncio
    async def test_tampered_signals_rejected(
        self,
        agent_registry_client: AsyncClient,
        quality_input: dict[str, Any],
    ) -> None:
        await _register(agent_registry_client)
        generated = await _generate(agent_registry_client, VerificationCategory.QUALITY, quality_input)
        generated["public_signals"][2] = "1000"

        response = await _submit(agent_registry_client, VerificationCategory.QUALITY, generated)

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PROOF"

    @pytest.mark.asyncio
    async def test_non_creator_submission(
        self,
        agent_registry_client: AsyncClient,
        quality_input: dict[str, Any],
    ) -> None:
        await _register(agent_registry_client)
        generated = await _generate(agent_registry_client, VerificationCategory.QUALITY, quality_input)

        response = await _submit(
            agent_registry_client, VerificationCategory.QUALITY, generated, headers=REQUESTER
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_verify_off_chain(
        self,
        agent_registry_client: AsyncClient,
        quality_input: dict[str, Any],
    ) -> None:
        generated = await _generate(agent_registry_client, VerificationCategory.QUALITY, quality_input)
        request = {
            "category": "quality",
            "proof": generated["proof"],
            "public_signals": generated["public_signals"],
        }

        valid = await agent_registry_client.post("/api/v1/proofs/verify", json=request)
        request["category"] = "ethics"
        wrong_circuit = await agent_registry_client.post("/api/v1/proofs/verify", json=request)

        assert valid.json()["valid"] is True
        assert wrong_circuit.json()["valid"] is False

    @pytest.mark.asyncio
    async def test_orchestrate(
        self,
        agent_registry_client: AsyncClient,
        category_inputs: dict[VerificationCategory, dict[str, Any]],
    ) -> None:
        request: dict[str, Any] = {"agent_id": AGENT, "creator_id": "0xcreator"}
        for category in REQUIRED_CATEGORIES:
            request[category.value] = {
                **category_inputs[category],
                "evidence_commitment": f"commit-{category.value}",
            }

        response = await agent_registry_client.post("/api/v1/proofs/orchestrate", json=request)

        assert response.status_code == 200
        body = response.json()
        assert body["agent_fully_verified"] is True
        assert body["state"] == "fully_verified"
        assert set(body["category_flags"]) == {c.value for c in REQUIRED_CATEGORIES}
        assert body["master_proof_hash"].startswith("0x")


class TestInheritance:
    """Tests for proof inheritance endpoints."""

    @pytest.mark.asyncio
    async def test_inherit_and_walk_chain(
        self,
        agent_registry_client: AsyncClient,
        quality_input: dict[str, Any],
    ) -> None:
        await _register(agent_registry_client)
        generated = await _generate(agent_registry_client, VerificationCategory.QUALITY, quality_input)
        parent = (await _submit(agent_registry_client, VerificationCategory.QUALITY, generated)).json()
        child_owner = {"X-Caller-Address": "0xchild"}
        await _register(agent_registry_client, agent_id="agent-child", headers=child_owner)

        response = await agent_registry_client.post(
            "/api/v1/proofs/inherit",
            json={
                "parent_agent": AGENT,
                "child_agent": "agent-child",
                "proof_hash": parent["proof_hashes"]["quality"],
            },
            headers=child_owner,
        )

        assert response.status_code == 201
        edge = response.json()
        assert edge["parent_proof"] == parent["proof_hashes"]["quality"]

        chain = await agent_registry_client.get(f"/api/v1/proofs/{edge['child_proof']}/chain")

        assert chain.status_code == 200
        assert chain.json()["depth"] == 1
        assert chain.json()["chain"][0]["parent_agent"] == AGENT

    @pytest.mark.asyncio
    async def test_invalid_proof_hash(self, agent_registry_client: AsyncClient) -> None:
        response = await agent_registry_client.get("/api/v1/proofs/not-hex/chain")

        assert response.status_code == 400


class TestQueries:
    """Tests for paid queries and settlement."""

    @pytest.mark.asyncio
    async def test_query_lifecycle(
        self,
        agent_registry_client: AsyncClient,
        category_inputs: dict[VerificationCategory, dict[str, Any]],
    ) -> None:
        client = agent_registry_client
        await _register(client)
        await _verify_fully(client, category_inputs)

        capabilities = await client.put(
            f"/api/v1/queries/capabilities/{AGENT}",
            json={"supported_types": [1, 2], "base_price": "100", "complexity_multiplier": "10"},
            headers=CREATOR,
        )
        assert capabilities.status_code == 200

        price = await client.get(
            f"/api/v1/queries/capabilities/{AGENT}/price",
            params={"estimated_complexity": 500},
        )
        assert Decimal(price.json()["expected_payment"]) == Decimal("105")

        submitted = await client.post(
            "/api/v1/queries",
            json={"agent_id": AGENT, "query_type": 1, "payment": "100", "query_hash": "0xquery"},
            headers=REQUESTER,
        )
        assert submitted.status_code == 201
        assert submitted.json()["query_id"] == 1
        assert submitted.json()["processed"] is False

        proof = await client.post(
            "/api/v1/queries/1/payment-proof",
            json={"response_hash": "0xresponse"},
        )
        assert proof.status_code == 200
        assert proof.json()["payment_verified"] is True

        settlement = {
            "proof": proof.json()["proof"],
            "public_signals": proof.json()["public_signals"],
        }
        processed = await client.post("/api/v1/queries/1/process", json=settlement, headers=REQUESTER)

        assert processed.status_code == 200
        body = processed.json()
        assert body["processed"] is True
        assert Decimal(body["creator_payout"]) == Decimal("97.5")
        assert Decimal(body["platform_fee"]) == Decimal("2.5")
        assert body["response_commitment"] == proof.json()["response_commitment"]

        again = await client.post("/api/v1/queries/1/process", json=settlement, headers=REQUESTER)
        assert again.status_code == 409
        assert again.json()["error_code"] == "ALREADY_PROCESSED"

    @pytest.mark.asyncio
    async def test_quoted_price_settles(
        self,
        agent_registry_client: AsyncClient,
        category_inputs: dict[VerificationCategory, dict[str, Any]],
    ) -> None:
        client = agent_registry_client
        await _ready_for_queries(client, category_inputs)

        price = await client.get(
            f"/api/v1/queries/capabilities/{AGENT}/price",
            params={"estimated_complexity": 500},
        )
        quoted = price.json()["expected_payment"]

        submitted = await client.post(
            "/api/v1/queries",
            json={
                "agent_id": AGENT,
                "query_type": 1,
                "payment": quoted,
                "query_hash": "0xquery",
                "estimated_complexity": 500,
            },
            headers=REQUESTER,
        )
        assert submitted.status_code == 201
        assert Decimal(submitted.json()["complexity_multiplier"]) == Decimal("10")

        proof = await client.post("/api/v1/queries/1/payment-proof", json={"response_hash": "0xresponse"})
        assert proof.json()["payment_verified"] is True
        assert proof.json()["expected_payment"] == 105_000_000

        processed = await client.post(
            "/api/v1/queries/1/process",
            json={"proof": proof.json()["proof"], "public_signals": proof.json()["public_signals"]},
            headers=REQUESTER,
        )

        assert processed.status_code == 200
        assert Decimal(processed.json()["creator_payout"]) == Decimal("102.375")

    @pytest.mark.asyncio
    async def test_rail_failure_leaves_query_pending(
        self,
        agent_registry_client: AsyncClient,
        category_inputs: dict[VerificationCategory, dict[str, Any]],
        payment_rail: MockPaymentRail,
    ) -> None:
        client = agent_registry_client
        await _ready_for_queries(client, category_inputs)
        await client.post(
            "/api/v1/queries",
            json={"agent_id": AGENT, "query_type": 1, "payment": "100", "query_hash": "0xquery"},
            headers=REQUESTER,
        )
        proof = await client.post("/api/v1/queries/1/payment-proof", json={"response_hash": "0xresponse"})
        settlement = {"proof": proof.json()["proof"], "public_signals": proof.json()["public_signals"]}

        with patch.object(
            payment_rail, "distribute", AsyncMock(side_effect=PaymentRailError("facilitator down"))
        ):
            failed = await client.post("/api/v1/queries/1/process", json=settlement, headers=REQUESTER)

        assert failed.status_code == 502
        assert failed.json()["error_code"] == "PAYMENT_RAIL_FAILED"
        assert (await client.get("/api/v1/queries/1")).json()["processed"] is False

        retried = await client.post("/api/v1/queries/1/process", json=settlement, headers=REQUESTER)
        assert retried.status_code == 200
        assert retried.json()["processed"] is True

    @pytest.mark.asyncio
    async def test_query_requires_verified_agent(self, agent_registry_client: AsyncClient) -> None:
        await _register(agent_registry_client)

        response = await agent_registry_client.post(
            "/api/v1/queries",
            json={"agent_id": AGENT, "query_type": 1, "payment": "100", "query_hash": "0xquery"},
            headers=REQUESTER,
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_query(self, agent_registry_client: AsyncClient) -> None:
        response = await agent_registry_client.get("/api/v1/queries/99")

        assert response.status_code == 404
        assert response.json()["error_code"] == "QUERY_NOT_FOUND"


class TestHealth:
    """Tests for service endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, agent_registry_client: AsyncClient) -> None:
        response = await agent_registry_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "agent_registry"
        assert set(body["components"]) == {"ledger", "payment_rail", "proof_backend"}
