"""
Proving Backends
================

Turn a computed circuit witness into a Groth16-shaped proof and check it.

- ``SnarkjsBackend`` runs ``snarkjs groth16 fullprove|verify`` against the
  compiled circuit artifacts under ``ZK_BUILD_DIR``.
- ``MockProofBackend`` derives the proof points from a keyed digest over the
  circuit name and public signals. Any change to either breaks verification,
  which is enough for development and tests.

Usage:
    from shared.zk.backends import get_proof_backend

    backend = get_proof_backend()
    proof, signals = await backend.prove("training_quality", inputs, public_signals)
    assert await backend.verify("training_quality", proof, signals)

Version: 0.1.0
"""

import asyncio
import hashlib
import hmac
import json
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from shared.config import ProofBackendMode, settings
from shared.logging import get_logger
from shared.zk.field import FIELD_ORDER
from shared.zk.models import PublicSignals, ZKProof


logger = get_logger(__name__)


class ProofGenerationError(RuntimeError):
    """The backend could not produce a proof for the given witness."""


class ProofBackend(ABC):
    """
    Abstract proving backend.

    Implementations must be safe to call concurrently; each call is a pure
    function of its arguments.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier recorded in proof metadata."""
        ...

    @abstractmethod
    async def prove(
        self,
        circuit_name: str,
        circuit_inputs: dict[str, Any],
        public_signals: list[int],
    ) -> tuple[ZKProof, PublicSignals]:
        """
        Generate a proof.

        Args:
            circuit_name: Circuit to prove against
            circuit_inputs: Full witness input (private and public)
            public_signals: Public signals computed off-circuit

        Returns:
            Tuple of (proof, public signals as attested by the proof)
        """
        ...

    @abstractmethod
    async def verify(
        self,
        circuit_name: str,
        proof: ZKProof,
        public_signals: PublicSignals | list[int],
    ) -> bool:
        """Check a proof against its public signals."""
        ...


class MockProofBackend(ProofBackend):
    """Deterministic keyed-digest proofs. Not zero-knowledge, not sound."""

    def __init__(self, secret: str | None = None) -> None:
        key = secret if secret is not None else settings.zk.mock_secret.get_secret_value()
        self._key = key.encode()

    @property
    def name(self) -> str:
        return ProofBackendMode.MOCK.value

    def _coordinates(self, circuit_name: str, signals: list[str]) -> list[str]:
        message = json.dumps([circuit_name, signals]).encode()
        coordinates = []
        for i in range(8):
            digest = hmac.new(self._key, message + i.to_bytes(1, "big"), hashlib.sha256).digest()
            coordinates.append(str(int.from_bytes(digest, "big") % FIELD_ORDER))
        return coordinates

    def _build(self, circuit_name: str, signals: PublicSignals) -> ZKProof:
        x = self._coordinates(circuit_name, signals.signals)
        return ZKProof(
            a=[x[0], x[1], "1"],
            b=[[x[2], x[3]], [x[4], x[5]], ["1", "0"]],
            c=[x[6], x[7], "1"],
        )

    async def prove(
        self,
        circuit_name: str,
        circuit_inputs: dict[str, Any],
        public_signals: list[int],
    ) -> tuple[ZKProof, PublicSignals]:
        signals = PublicSignals.from_ints(public_signals)
        return self._build(circuit_name, signals), signals

    async def verify(
        self,
        circuit_name: str,
        proof: ZKProof,
        public_signals: PublicSignals | list[int],
    ) -> bool:
        if not isinstance(public_signals, PublicSignals):
            public_signals = PublicSignals.from_ints(public_signals)
        try:
            presented = proof.to_calldata()
        except (ValueError, IndexError):
            return False
        expected = self._build(circuit_name, public_signals).to_calldata()
        return all(
            hmac.compare_digest(str(p).encode(), str(e).encode())
            for p, e in zip(presented, expected, strict=True)
        )


class SnarkjsBackend(ProofBackend):
    """
    snarkjs subprocess backend.

    Expects, per circuit, ``<build_dir>/<circuit>/<circuit>_js/<circuit>.wasm``,
    ``proving_key.zkey`` and ``verification_key.json``.
    """

    def __init__(
        self,
        build_dir: str | Path | None = None,
        command: list[str] | None = None,
    ) -> None:
        self.build_dir = Path(build_dir) if build_dir else settings.zk.build_dir
        self.command = command or settings.zk.snarkjs_argv
        self._validate_setup()

    @property
    def name(self) -> str:
        return ProofBackendMode.SNARKJS.value

    def _validate_setup(self) -> None:
        if not self.build_dir.exists():
            logger.warning(
                "zk_circuit_build_dir_not_found",
                path=str(self.build_dir),
            )

    def _circuit_paths(self, circuit_name: str) -> tuple[Path, Path, Path]:
        circuit_dir = self.build_dir / circuit_name
        return (
            circuit_dir / f"{circuit_name}_js" / f"{circuit_name}.wasm",
            circuit_dir / "proving_key.zkey",
            circuit_dir / "verification_key.json",
        )

    async def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        return await asyncio.to_thread(
            subprocess.run,
            [*self.command, "groth16", *args],
            capture_output=True,
            text=True,
            cwd=self.build_dir.parent,
        )

    async def prove(
        self,
        circuit_name: str,
        circuit_inputs: dict[str, Any],
        public_signals: list[int],
    ) -> tuple[ZKProof, PublicSignals]:
        wasm_path, zkey_path, _ = self._circuit_paths(circuit_name)

        if not wasm_path.exists():
            raise FileNotFoundError(f"Circuit WASM not found: {wasm_path}")
        if not zkey_path.exists():
            raise FileNotFoundError(f"Proving key not found: {zkey_path}")

        # Per-call directory so concurrent proofs never share files
        with tempfile.TemporaryDirectory(prefix=f"{circuit_name}_") as tmp:
            workdir = Path(tmp)
            input_file = workdir / "input.json"
            proof_file = workdir / "proof.json"
            public_file = workdir / "public.json"

            input_file.write_text(json.dumps(circuit_inputs))

            start_time = time.time()
            result = await self._run(
                [
                    "fullprove",
                    str(input_file),
                    str(wasm_path),
                    str(zkey_path),
                    str(proof_file),
                    str(public_file),
                ]
            )
            proving_time_ms = int((time.time() - start_time) * 1000)

            if result.returncode != 0:
                logger.error(
                    "snarkjs_proof_generation_failed",
                    stderr=result.stderr,
                    circuit=circuit_name,
                )
                raise ProofGenerationError(f"Proof generation failed: {result.stderr}")

            proof = ZKProof.from_snarkjs(json.loads(proof_file.read_text()))
            signals = PublicSignals(signals=[str(s) for s in json.loads(public_file.read_text())])

        if signals.to_int_list() != list(public_signals):
            logger.warning(
                "snarkjs_public_signals_mismatch",
                circuit=circuit_name,
            )

        logger.info(
            "zk_proof_generated",
            circuit=circuit_name,
            proving_time_ms=proving_time_ms,
        )
        return proof, signals

    async def verify(
        self,
        circuit_name: str,
        proof: ZKProof,
        public_signals: PublicSignals | list[int],
    ) -> bool:
        if not isinstance(public_signals, PublicSignals):
            public_signals = PublicSignals.from_ints(public_signals)

        _, _, vkey_path = self._circuit_paths(circuit_name)
        if not vkey_path.exists():
            logger.warning("zk_verification_key_not_found", path=str(vkey_path))
            return False

        with tempfile.TemporaryDirectory(prefix=f"{circuit_name}_verify_") as tmp:
            workdir = Path(tmp)
            proof_file = workdir / "proof.json"
            public_file = workdir / "public.json"

            proof_file.write_text(json.dumps(proof.to_snarkjs()))
            public_file.write_text(json.dumps(public_signals.signals))

            result = await self._run(
                ["verify", str(vkey_path), str(public_file), str(proof_file)]
            )

        is_valid = result.returncode == 0 and "OK" in result.stdout
        if not is_valid:
            logger.info(
                "snarkjs_proof_rejected",
                circuit=circuit_name,
                stderr=result.stderr,
            )
        return is_valid


# Global backend instance
_backend: ProofBackend | None = None


def get_proof_backend() -> ProofBackend:
    """Get the configured proving backend."""
    global _backend

    if _backend is None:
        mode = settings.zk.backend

        if mode == ProofBackendMode.MOCK:
            _backend = MockProofBackend()
        elif mode == ProofBackendMode.SNARKJS:
            _backend = SnarkjsBackend()
        else:
            raise ValueError(f"Unknown proof backend: {mode}")

        logger.info("proof_backend_initialized", backend=_backend.name)

    return _backend


def set_proof_backend(backend: ProofBackend) -> None:
    """Override the proving backend."""
    global _backend
    _backend = backend
    logger.info("proof_backend_set", backend=backend.name)


def reset_proof_backend() -> None:
    """Reset the backend to be re-initialized."""
    global _backend
    _backend = None
