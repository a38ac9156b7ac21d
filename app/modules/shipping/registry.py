"""
Endpoint Registry

Catalogue of (carrier, operation) -> EndpointConfig, built once at startup
from every registered carrier plus an optional JSON file of extra endpoints.

- Carrier names are normalized (lower-cased) at insertion and lookup
- Operation names match exactly
- A (carrier, operation) pair may be registered only once
- lookup() returns None for unknown pairs; callers choose whether that is a 404
"""
import json
import logging
from pathlib import Path
from typing import Dict, Generic, Iterator, List, Optional, TypeVar

from app.core.exceptions import ConfigurationError
from app.modules.shipping.carriers import get_carrier_class, get_registered_carriers
from app.modules.shipping.carriers.base import BaseCarrier
from app.modules.shipping.endpoint import EndpointConfig
from app.modules.shipping.templates import schema_from_json, validate_schema

logger = logging.getLogger(__name__)

V = TypeVar("V")


class NormalizedKeyMap(Generic[V]):
    """Mapping whose string keys are compared case-insensitively."""

    def __init__(self):
        self._data: Dict[str, V] = {}

    @staticmethod
    def normalize(key: str) -> str:
        return key.strip().lower()

    def __getitem__(self, key: str) -> V:
        return self._data[self.normalize(key)]

    def __setitem__(self, key: str, value: V) -> None:
        self._data[self.normalize(key)] = value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.normalize(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        return self._data.get(self.normalize(key), default)

    def values(self):
        return self._data.values()

    def setdefault(self, key: str, default: V) -> V:
        return self._data.setdefault(self.normalize(key), default)


class ConfiguredCarrier(BaseCarrier):
    """Carrier declared only in the endpoints file; uses the default hooks."""

    def __init__(self, code: str, description: str = ""):
        self.code = code.lower()
        self.name = code
        self.description = description

    def endpoints(self, settings) -> List[EndpointConfig]:
        return []


class EndpointRegistry:
    """Immutable-after-load endpoint catalogue."""

    def __init__(self):
        self._endpoints: NormalizedKeyMap[Dict[str, EndpointConfig]] = NormalizedKeyMap()
        self._carriers: NormalizedKeyMap[BaseCarrier] = NormalizedKeyMap()

    def add_carrier(self, carrier: BaseCarrier, settings) -> None:
        self._carriers[carrier.code] = carrier
        for endpoint in carrier.endpoints(settings):
            self.register(endpoint)

    def register(self, endpoint: EndpointConfig) -> None:
        """
        Add one endpoint.

        Raises:
            ConfigurationError: duplicate (carrier, operation) or invalid body schema
        """
        if self.lookup(endpoint.carrier, endpoint.operation) is not None:
            raise ConfigurationError(
                f"Duplicate endpoint {endpoint.carrier}/{endpoint.operation}",
                details={"carrier": endpoint.carrier, "operation": endpoint.operation},
            )
        if endpoint.body_schema is not None:
            try:
                validate_schema(endpoint.body_schema, f"{endpoint.carrier}.{endpoint.operation}")
            except ConfigurationError as e:
                e.details.update({"carrier": endpoint.carrier, "operation": endpoint.operation})
                raise
        self._endpoints.setdefault(endpoint.carrier, {})[endpoint.operation] = endpoint
        if endpoint.carrier not in self._carriers:
            self._carriers[endpoint.carrier] = ConfiguredCarrier(
                endpoint.carrier, endpoint.description
            )
        if not endpoint.is_configured:
            logger.warning(
                f"[REGISTRY] {endpoint.carrier}/{endpoint.operation} has no base URL configured"
            )

    def lookup(self, carrier: str, operation: str) -> Optional[EndpointConfig]:
        operations = self._endpoints.get(carrier)
        if operations is None:
            return None
        return operations.get(operation)

    def has_carrier(self, carrier: str) -> bool:
        return carrier in self._endpoints

    def carrier(self, code: str) -> Optional[BaseCarrier]:
        return self._carriers.get(code)

    def carriers(self) -> List[str]:
        return sorted(self._endpoints)

    def operations(self, carrier: str) -> List[str]:
        return sorted(self._endpoints.get(carrier) or {})

    def load_json(self, path: str) -> int:
        """
        Register extra endpoints from a JSON list of objects shaped like:

            {"carrier": "...", "operation": "...", "url": "...", "method": "POST",
             "headers": {...}, "bodyTemplate": {...}, "queryParameters": {...}}

        Returns the number of endpoints added.
        """
        try:
            raw = json.loads(Path(path).read_text())
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read endpoints file {path}: {e}") from e

        if not isinstance(raw, list):
            raise ConfigurationError(f"Endpoints file {path} must contain a JSON list")

        for index, item in enumerate(raw):
            if not isinstance(item, dict):
                raise ConfigurationError(f"{path}[{index}] is not an object")
            missing = [key for key in ("carrier", "operation", "url") if not item.get(key)]
            if missing:
                raise ConfigurationError(
                    f"{path}[{index}] is missing {', '.join(missing)}",
                    details={"fields": missing},
                )
            template = item.get("bodyTemplate")
            self.register(EndpointConfig(
                carrier=item["carrier"],
                operation=item["operation"],
                url=item["url"],
                method=item.get("method", "POST"),
                headers=item.get("headers") or {},
                body_schema=schema_from_json(template) if template is not None else None,
                query_parameters=tuple(item.get("queryParameters") or ()),
                base_url=item.get("baseUrl", ""),
                description=item.get("description", ""),
            ))
        return len(raw)

    def __len__(self) -> int:
        return sum(len(ops) for ops in self._endpoints.values())


def build_registry(settings) -> EndpointRegistry:
    """Build the registry from all registered carriers and the optional endpoints file."""
    registry = EndpointRegistry()
    for code in get_registered_carriers():
        carrier_cls = get_carrier_class(code)
        registry.add_carrier(carrier_cls(), settings)

    if settings.CARRIER_ENDPOINTS_FILE:
        added = registry.load_json(settings.CARRIER_ENDPOINTS_FILE)
        logger.info(f"[REGISTRY] Loaded {added} endpoints from {settings.CARRIER_ENDPOINTS_FILE}")

    logger.info(
        f"[REGISTRY] {len(registry)} endpoints across carriers: {', '.join(registry.carriers())}"
    )
    return registry
