"""
Correlation keys for shipment-history lookups.

Each stored order carries up to four JSON blobs. They are read in a fixed
order (BOL response, pickup response, rate-quote response, order metadata)
and the first non-empty value found for each key wins. Inside one blob the
more specific field is read first: shipmentConfirmationNumber before pro,
purchaseOrder before po.
"""
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, Optional


@dataclass
class CorrelationKeySet:
    pro: Optional[str] = None
    bol: Optional[str] = None
    po: Optional[str] = None
    pur: Optional[str] = None
    ldn: Optional[str] = None
    exl: Optional[str] = None
    interlinePro: Optional[str] = None

    def as_params(self) -> Dict[str, str]:
        """Non-empty keys only, in declaration order."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name)
        }

    def is_empty(self) -> bool:
        return not self.as_params()

    def offer(self, key: str, value: Any) -> None:
        """Set `key` unless an earlier blob already filled it."""
        if getattr(self, key) is not None:
            return
        if value is None or isinstance(value, (dict, list, bool)):
            return
        text = str(value).strip()
        if text:
            setattr(self, key, text)


def get_path(data: Any, path: str) -> Any:
    """Dotted lookup ("data.referenceNumbers.pro"); None on any miss."""
    current = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _first(data: Any, paths: Iterable[str]) -> Any:
    for path in paths:
        value = get_path(data, path)
        if value not in (None, ""):
            return value
    return None


def _read_bol(keys: CorrelationKeySet, bol: Any) -> None:
    refs = _first(bol, ("referenceNumbers", "data.referenceNumbers"))
    if not isinstance(refs, dict):
        return
    keys.offer("pro", refs.get("shipmentConfirmationNumber"))
    keys.offer("pro", refs.get("pro"))
    keys.offer("bol", refs.get("bol"))


def _read_pickup(keys: CorrelationKeySet, pickup: Any) -> None:
    keys.offer("pur", _first(pickup, ("pickupRequestId", "data.pickupRequestId", "id")))


def _read_rate_quote(keys: CorrelationKeySet, quote: Any) -> None:
    keys.offer("ldn", _first(quote, ("quoteId", "data.quoteId")))


def _read_metadata(keys: CorrelationKeySet, meta: Any) -> None:
    keys.offer("po", _first(meta, ("purchaseOrder", "po")))
    keys.offer("exl", get_path(meta, "exl"))
    keys.offer("interlinePro", get_path(meta, "interlinePro"))
    keys.offer("pro", get_path(meta, "pro"))
    keys.offer("bol", get_path(meta, "bol"))


def extract_correlation_keys(order, quote_id_as_load_number: bool = False) -> CorrelationKeySet:
    """
    Derive the key set for one order.

    quote_id_as_load_number enables treating a rate-quote quoteId as the
    carrier load number (ldn).
    """
    keys = CorrelationKeySet()
    _read_bol(keys, order.bol_result)
    _read_pickup(keys, order.pickup_result)
    if quote_id_as_load_number:
        _read_rate_quote(keys, order.rate_quote_result)
    _read_metadata(keys, order.orders_meta)
    return keys


def resolve_carrier(order, default: str) -> str:
    """Carrier code for an order, lower-cased."""
    carrier = (
        _first(order.orders_meta, ("carrier", "shippingCompanyName"))
        or get_path(order.bol_result, "shippingCompanyName")
        or default
    )
    return str(carrier).strip().lower()
