# --- File: core/ledger.py ---
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
import threading
import config
import logging

from errors import NotFoundError, ValidationError
from envelope_crypto import normalize_commitment_hash

# --- Ledger Adapter (external order contract) ---

# Positional layout of the contract's order struct when returned as a tuple.
COMMITMENT_RECORD_FIELDS = ("blobHash", "keyCommitment", "amount", "source", "destination", "expiry")


class CommitmentRecord(BaseModel):
    """On-chain order as seen by the envelope subsystem."""
    model_config = ConfigDict(frozen=True)

    blob_hash: str
    key_commitment: str
    amount: int = 0
    source: str = config.ZERO_ADDRESS
    destination: str = config.ZERO_ADDRESS
    expiry: int = 0


class CommitmentSubmitted(BaseModel):
    """Event emitted when an order carrying a commitment is anchored."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Ledger-assigned order id")
    source: str
    destination: str


def normalize_commitment_record(raw: Any) -> CommitmentRecord:
    """
    Contract clients return the order either as a struct with named fields or as a plain
    tuple. Both are normalized here so nothing past the adapter has to care.
    """
    if isinstance(raw, CommitmentRecord):
        return raw
    if isinstance(raw, Mapping):
        values = {name: raw.get(name) for name in COMMITMENT_RECORD_FIELDS}
    elif isinstance(raw, (tuple, list)) and not hasattr(raw, "_fields"):
        if len(raw) < 2:
            raise ValidationError("Ledger commitment record is too short.")
        values = dict(zip(COMMITMENT_RECORD_FIELDS, raw))
    elif hasattr(raw, "blobHash"):
        values = {name: getattr(raw, name, None) for name in COMMITMENT_RECORD_FIELDS}
    else:
        raise ValidationError("Unrecognized ledger commitment record shape.")

    if values.get("blobHash") is None or values.get("keyCommitment") is None:
        raise ValidationError("Ledger commitment record has no commitment hashes.")

    return CommitmentRecord(
        blob_hash=normalize_commitment_hash(values["blobHash"]),
        key_commitment=normalize_commitment_hash(values["keyCommitment"]),
        amount=int(values.get("amount") or 0),
        source=values.get("source") or config.ZERO_ADDRESS,
        destination=values.get("destination") or config.ZERO_ADDRESS,
        expiry=int(values.get("expiry") or 0),
    )


def default_expiry(now: Optional[datetime] = None) -> int:
    """Unix seconds after which an unapproved order lapses."""
    now = now or datetime.now(timezone.utc)
    return int(now.timestamp()) + config.RAILX_ORDER_TTL_SECONDS


class LedgerClient(ABC):
    """Interface of the external order contract used by the envelope subsystem."""

    @abstractmethod
    def submit_commitment(self, blob_hash: str, key_commitment: str, amount: int,
                          destination: str, expiry: int, source: str = config.ZERO_ADDRESS) -> int:
        """Anchors the commitment pair and returns the ledger-assigned order id."""

    @abstractmethod
    def read_commitment(self, order_id: int) -> CommitmentRecord:
        """Resolves an order id back to its commitment record."""

    @abstractmethod
    def commitment_events(self, destination: str, from_id: int = 0) -> List[CommitmentSubmitted]:
        """CommitmentSubmitted events addressed to ``destination``, oldest first."""


class InMemoryLedger(LedgerClient):
    """Process-local ledger for development and tests. Stores raw tuples like a contract call would return."""

    def __init__(self):
        self._lock = threading.Lock()
        self._orders: Dict[int, tuple] = {}
        self._events: List[CommitmentSubmitted] = []
        self._next_id = 1

    def submit_commitment(self, blob_hash, key_commitment, amount, destination, expiry, source=config.ZERO_ADDRESS):
        blob_hash = normalize_commitment_hash(blob_hash)
        key_commitment = normalize_commitment_hash(key_commitment)
        if amount <= 0:
            raise ValidationError("amount must be positive.")
        with self._lock:
            order_id = self._next_id
            self._next_id += 1
            self._orders[order_id] = (blob_hash, key_commitment, int(amount), source, destination, int(expiry))
            self._events.append(CommitmentSubmitted(id=order_id, source=source, destination=destination))
        logging.info(f"Ledger order {order_id} anchored for destination {destination}.")
        return order_id

    def read_commitment(self, order_id):
        with self._lock:
            raw = self._orders.get(order_id)
        if raw is None:
            raise NotFoundError(f"Ledger order {order_id} not found.")
        return normalize_commitment_record(raw)

    def commitment_events(self, destination, from_id=0):
        destination = destination.lower()
        with self._lock:
            return [e for e in self._events if e.id >= from_id and e.destination.lower() == destination]


def discover_commitments(ledger: LedgerClient, destination: str, from_id: int = 0) -> List[Dict[str, Any]]:
    """
    Polls CommitmentSubmitted events for a destination and resolves each order to the
    blob hash the read path needs. Newest first.
    """
    events = ledger.commitment_events(destination, from_id=from_id)
    orders = []
    for event in events:
        record = ledger.read_commitment(event.id)
        orders.append({
            "id": event.id,
            "source": event.source,
            "destination": event.destination,
            "commitmentHash": record.blob_hash,
            "keyCommitment": record.key_commitment,
            "amount": record.amount,
            "expiry": record.expiry,
        })
    orders.sort(key=lambda o: o["id"], reverse=True)
    logging.debug(f"Discovered {len(orders)} commitments for {destination}.")
    return orders
