"""
Flow network client protocol and data model.

Defines the interface the high-level client depends on, not a concrete
implementation. This keeps transaction assembly and polling testable
without an access node.

Concrete implementations:
    - FlowRestClient (REST Access API v1, rest_client.py)
    - FakeFlowClient (tests)

Operations:
    - get_account(address) -> Account
    - get_block(id) -> list[Block]
    - get_block_height(heights) -> list[Block]
    - get_latest_block() -> list[Block]
    - submit_transaction(body) -> SubmitResult
    - get_transaction_result(tx_id) -> TransactionResult

Implementations raise on network failure. The caller decides how to
surface the error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

# =========================================================================
# Enums
# =========================================================================


class TransactionStatus(StrEnum):
    """Transaction lifecycle states reported by the access node.

    SEALED is the success terminal state, EXPIRED the failure terminal
    state. Everything else, including values not listed here, means
    "keep polling".
    """

    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    FINALIZED = "FINALIZED"
    EXECUTED = "EXECUTED"
    SEALED = "SEALED"
    EXPIRED = "EXPIRED"


# =========================================================================
# Data model
# =========================================================================


def _to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


@dataclass(frozen=True)
class AccountKey:
    """One public key registered on an account.

    Attributes:
        index: Key index as reported by the node (string, e.g. "0").
        public_key: Hex public key, "0x"-prefixed as the node returns it.
        sequence_number: Next unused proposal sequence number for this key.
        weight: Signature weight (1000 = full weight).
        revoked: Whether the key has been revoked.
        signing_algorithm: e.g. "ECDSA_P256".
        hashing_algorithm: e.g. "SHA2_256".
    """

    index: str
    public_key: str
    sequence_number: int
    weight: int = 1000
    revoked: bool = False
    signing_algorithm: str = ""
    hashing_algorithm: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> AccountKey:
        return cls(
            index=str(data.get("index", "")),
            public_key=data.get("public_key", ""),
            sequence_number=_to_int(data.get("sequence_number")),
            weight=_to_int(data.get("weight"), 1000),
            revoked=bool(data.get("revoked", False)),
            signing_algorithm=data.get("signing_algorithm", ""),
            hashing_algorithm=data.get("hashing_algorithm", ""),
        )


@dataclass(frozen=True)
class Account:
    """A Flow account as returned by the access node."""

    address: str
    balance: int = 0
    keys: tuple[AccountKey, ...] = ()
    contracts: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Account:
        return cls(
            address=data.get("address", ""),
            balance=_to_int(data.get("balance")),
            keys=tuple(AccountKey.from_json(k) for k in data.get("keys") or ()),
            contracts=dict(data.get("contracts") or {}),
        )


@dataclass(frozen=True)
class Block:
    """Block header fields used as a transaction's reference block."""

    id: str
    height: int
    parent_id: str = ""
    timestamp: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Block:
        header = data.get("header", data)
        return cls(
            id=header.get("id", ""),
            height=_to_int(header.get("height")),
            parent_id=header.get("parent_id", ""),
            timestamp=header.get("timestamp", ""),
        )


@dataclass(frozen=True)
class Event:
    """An event emitted by a transaction.

    ``payload`` is base64 of a JSON-Cadence value; decode it with
    ``arguments.decode_argument``.
    """

    type: str
    payload: str
    transaction_id: str = ""
    event_index: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Event:
        return cls(
            type=data.get("type", ""),
            payload=data.get("payload", ""),
            transaction_id=data.get("transaction_id", ""),
            event_index=_to_int(data.get("event_index")),
        )


@dataclass(frozen=True)
class TransactionResult:
    """Status and outcome of a submitted transaction.

    Attributes:
        status: Upper-cased lifecycle status (see TransactionStatus).
            Kept as a plain string so unrecognised values survive parsing.
        events: Events in emission order.
        status_code: Execution status code (0 on success).
        error_message: Execution error, empty on success.
        execution: "Success", "Failure" or "Pending" where reported.
        block_id: Block the transaction was included in, if any.
    """

    status: str
    events: tuple[Event, ...] = ()
    status_code: int = 0
    error_message: str = ""
    execution: str = ""
    block_id: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> TransactionResult:
        return cls(
            status=str(data.get("status") or TransactionStatus.UNKNOWN).upper(),
            events=tuple(Event.from_json(e) for e in data.get("events") or ()),
            status_code=_to_int(data.get("status_code")),
            error_message=data.get("error_message", "") or "",
            execution=data.get("execution", "") or "",
            block_id=data.get("block_id", "") or "",
        )

    def find_event(self, event_type: str) -> Event | None:
        """First event of the given type, or None."""
        for event in self.events:
            if event.type == event_type:
                return event
        return None


@dataclass(frozen=True)
class SubmitResult:
    """Result of submitting a transaction: the id to poll with."""

    id: str


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class FlowClient(Protocol):
    """Interface for Flow access node operations.

    Methods are async because network I/O is inherently asynchronous.
    Implementations handle connection management and raise on failure.
    """

    async def get_account(self, address: str) -> Account:
        """Fetch an account, including its keys."""
        ...

    async def get_block(self, block_id: str) -> list[Block]:
        """Fetch blocks by id."""
        ...

    async def get_block_height(self, heights: list[int]) -> list[Block]:
        """Fetch blocks by height."""
        ...

    async def get_latest_block(self) -> list[Block]:
        """Fetch the latest sealed block (as a one-element list)."""
        ...

    async def submit_transaction(self, body: dict[str, Any]) -> SubmitResult:
        """Submit a transaction body (see Transaction.to_dict())."""
        ...

    async def get_transaction_result(self, tx_id: str) -> TransactionResult:
        """Fetch the current status and events of a transaction."""
        ...
