"""
In-Memory Ledger
================

Key-value ledger with serialized, all-or-nothing transactions.

Every state change runs inside ``Ledger.transaction()``: one writer at a
time, and a block number plus transaction hash assigned on commit. Each
namespace the body touches is deep-copied on first access and restored if
the body raises, so a write costs the size of the namespaces it reads, not
the whole ledger. Readers do not take the lock; events are published only
on commit.

Usage:
    ledger = Ledger()

    async with ledger.transaction(caller="0xabc", value=fee) as tx:
        tx.put("agents", agent_id, record)
        tx.credit("registry", fee)
        tx.emit("AgentRegistered", agent_id=agent_id)

Version: 0.1.0
"""

import asyncio
import copy
import hashlib
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from shared.blockchain.errors import InsufficientPaymentError, ReentrancyError
from shared.blockchain.models import LedgerEvent
from shared.logging import get_logger


logger = get_logger(__name__)

# Guards held by the current task and anything it awaits
_active_guards: ContextVar[frozenset[str]] = ContextVar("ledger_guards", default=frozenset())


class Transaction:
    """Write handle for one in-flight ledger transaction."""

    def __init__(
        self,
        ledger: "Ledger",
        caller: str,
        value: Decimal,
        tx_hash: str,
        block_number: int,
    ) -> None:
        self._ledger = ledger
        self.caller = caller
        self.value = value
        self.tx_hash = tx_hash
        self.block_number = block_number
        self.timestamp = datetime.now(UTC)
        self.events: list[LedgerEvent] = []
        # namespace -> contents before this transaction first touched it
        self._snapshots: dict[str, dict[Any, Any] | None] = {}

    def _namespace(self, namespace: str, create: bool = False) -> dict[Any, Any]:
        """Live namespace, snapshotted the first time this transaction touches it."""
        state = self._ledger._state
        if namespace not in self._snapshots:
            current = state.get(namespace)
            self._snapshots[namespace] = copy.deepcopy(current) if current is not None else None
        if create:
            return state.setdefault(namespace, {})
        return state.get(namespace, {})

    def rollback(self) -> None:
        """Restore every touched namespace to its pre-transaction contents."""
        state = self._ledger._state
        for namespace, saved in self._snapshots.items():
            if saved is None:
                state.pop(namespace, None)
            else:
                state[namespace] = saved

    def get(self, namespace: str, key: Any, default: Any = None) -> Any:
        return self._namespace(namespace).get(key, default)

    def contains(self, namespace: str, key: Any) -> bool:
        return key in self._namespace(namespace)

    def put(self, namespace: str, key: Any, value: Any) -> None:
        self._namespace(namespace, create=True)[key] = value

    def values(self, namespace: str) -> list[Any]:
        return list(self._namespace(namespace).values())

    def next_id(self, counter: str) -> int:
        """Monotonic 1-based id for the named counter."""
        value = self.get("counters", counter, 0) + 1
        self.put("counters", counter, value)
        return value

    def credit(self, account: str, amount: Decimal) -> None:
        balances = self._ledger._balances
        balances[account] = balances.get(account, Decimal(0)) + amount

    def debit(self, account: str, amount: Decimal) -> None:
        balances = self._ledger._balances
        available = balances.get(account, Decimal(0))
        if available < amount:
            raise InsufficientPaymentError(
                f"Account {account} holds {available}, cannot debit {amount}"
            )
        balances[account] = available - amount

    def transfer(self, source: str, destination: str, amount: Decimal) -> None:
        self.debit(source, amount)
        self.credit(destination, amount)

    def emit(self, name: str, **data: Any) -> None:
        self.events.append(
            LedgerEvent(
                name=name,
                tx_hash=self.tx_hash,
                block_number=self.block_number,
                timestamp=self.timestamp,
                data=data,
            )
        )


class Ledger:
    """
    In-memory ledger shared by the registry, query processor and
    inheritance contracts.

    Data is stored in memory and lost on restart.
    """

    def __init__(self, start_block: int = 1000) -> None:
        self._state: dict[str, dict[Any, Any]] = {}
        self._balances: dict[str, Decimal] = {}
        self._events: list[LedgerEvent] = []
        self._block_number = start_block
        self._start_block = start_block
        self._lock = asyncio.Lock()

        logger.debug("ledger_initialized", block_number=start_block)

    @property
    def block_number(self) -> int:
        return self._block_number

    def _generate_tx_hash(self) -> str:
        """Generate a transaction hash."""
        return "0x" + hashlib.sha256(uuid.uuid4().bytes).hexdigest()

    def _guard_key(self, name: str) -> str:
        return f"{id(self)}:{name}"

    @asynccontextmanager
    async def non_reentrant(self, name: str) -> AsyncIterator[None]:
        """
        Reject re-entry into the named section from the same call chain.

        Concurrent, unrelated tasks are serialized by the transaction lock
        instead and are not affected.
        """
        key = self._guard_key(name)
        active = _active_guards.get()
        if key in active:
            raise ReentrancyError(f"Reentrant call into {name}")

        token = _active_guards.set(active | {key})
        try:
            yield
        finally:
            _active_guards.reset(token)

    @asynccontextmanager
    async def transaction(
        self,
        caller: str,
        value: Decimal = Decimal(0),
    ) -> AsyncIterator[Transaction]:
        """Open a serialized, atomic transaction."""
        # A nested transaction in the same call chain would deadlock on the lock
        async with self.non_reentrant("transaction"):
            async with self._lock:
                balance_snapshot = dict(self._balances)

                tx = Transaction(
                    self,
                    caller=caller,
                    value=value,
                    tx_hash=self._generate_tx_hash(),
                    block_number=self._block_number + 1,
                )

                try:
                    yield tx
                except BaseException:
                    tx.rollback()
                    self._balances = balance_snapshot
                    logger.debug("ledger_transaction_reverted", tx_hash=tx.tx_hash)
                    raise

                self._block_number = tx.block_number
                self._events.extend(tx.events)

                logger.debug(
                    "ledger_transaction_committed",
                    tx_hash=tx.tx_hash,
                    block_number=tx.block_number,
                    events=[e.name for e in tx.events],
                )

    # =========================================================================
    # Reads
    # =========================================================================

    def read(self, namespace: str, key: Any, default: Any = None) -> Any:
        """Read a committed value. Callers get a copy."""
        value = self._state.get(namespace, {}).get(key, default)
        return copy.deepcopy(value)

    def scan(self, namespace: str) -> list[Any]:
        """All committed values in a namespace, in insertion order."""
        return copy.deepcopy(list(self._state.get(namespace, {}).values()))

    def balance_of(self, account: str) -> Decimal:
        return self._balances.get(account, Decimal(0))

    def events(self, name: str | None = None) -> list[LedgerEvent]:
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.name == name]

    # =========================================================================
    # Test Utilities
    # =========================================================================

    def clear_all(self) -> None:
        """Clear all ledger data (for testing)."""
        self._state.clear()
        self._balances.clear()
        self._events.clear()
        self._block_number = self._start_block
        logger.debug("ledger_cleared")

    def get_stats(self) -> dict[str, int]:
        return {
            "block_number": self._block_number,
            "events": len(self._events),
            **{f"{ns}_records": len(items) for ns, items in self._state.items()},
        }
