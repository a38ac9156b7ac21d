"""
Canonical shipment status.

    pending -> picked_up -> in_transit -> delivered (terminal)

Carrier strings outside the vocabulary pass through lower-cased.
"""
from enum import Enum
from typing import Any, Dict, Optional


class CanonicalStatus(str, Enum):
    PENDING = "pending"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


STATUS_RANK = {
    CanonicalStatus.PENDING.value: 0,
    CanonicalStatus.PICKED_UP.value: 1,
    CanonicalStatus.IN_TRANSIT.value: 2,
    CanonicalStatus.DELIVERED.value: 3,
}

TERMINAL_STATUSES = frozenset({CanonicalStatus.DELIVERED.value})

# Carrier status vocabulary -> canonical status
STATUS_ALIASES = {
    "DELIVERED": CanonicalStatus.DELIVERED,
    "IN_TRANSIT": CanonicalStatus.IN_TRANSIT,
    "IN TRANSIT": CanonicalStatus.IN_TRANSIT,
    "OUT_FOR_DELIVERY": CanonicalStatus.IN_TRANSIT,
    "OUT FOR DELIVERY": CanonicalStatus.IN_TRANSIT,
    "PICKED_UP": CanonicalStatus.PICKED_UP,
    "PICKED UP": CanonicalStatus.PICKED_UP,
    "PENDING": CanonicalStatus.PENDING,
}


def history_record(response: Any) -> Dict[str, Any]:
    """Pick the shipment record out of a history response ({} when absent)."""
    record = response.get("data", response) if isinstance(response, dict) else response
    if isinstance(record, list):
        record = record[0] if record else {}
    return record if isinstance(record, dict) else {}


def _raw_status(record: Dict[str, Any]) -> Optional[str]:
    shipment_status = record.get("shipmentStatus")
    candidates = [
        record.get("status"),
        record.get("statusCd"),
        shipment_status.get("statusCd") if isinstance(shipment_status, dict) else None,
    ]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def map_status(record: Dict[str, Any]) -> str:
    """Map one shipment record to a canonical (or passthrough) status."""
    if not record:
        return CanonicalStatus.PENDING.value
    if record.get("deliveryDate"):
        return CanonicalStatus.DELIVERED.value

    raw = _raw_status(record)
    if raw:
        alias = STATUS_ALIASES.get(raw.upper())
        if alias:
            return alias.value
        return raw.lower()

    if record.get("pickupDate"):
        return CanonicalStatus.PICKED_UP.value
    return CanonicalStatus.PENDING.value


def map_history_status(response: Any) -> str:
    return map_status(history_record(response))


def should_update(current: Optional[str], new: str) -> bool:
    """
    True when `new` should be written over `current`.

    Unchanged values, anything replacing a terminal status, and canonical
    regressions are refused.
    """
    if not new or new == current:
        return False
    if current in TERMINAL_STATUSES:
        return False
    if current in STATUS_RANK and new in STATUS_RANK:
        return STATUS_RANK[new] > STATUS_RANK[current]
    return True
