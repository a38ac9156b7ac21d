"""
Base Carrier Interface

Every carrier supplies:
- its endpoint catalogue, built from settings (URLs, headers, body schemas)
- how correlation keys become shipment-history query parameters
- where the shipment record sits in a history response
- where the token sits in an authentication response

Carriers are data-driven: adding one means adding a subclass decorated with
@register_carrier, with no changes at the call sites.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from app.modules.shipping.correlation import CorrelationKeySet, get_path
from app.modules.shipping.status import history_record


class BaseCarrier(ABC):
    """Abstract base class for carrier definitions."""

    code: str = ""
    name: str = ""
    description: str = ""

    # Response paths searched for a bearer token after authentication
    token_paths = ("access_token", "token", "data.token", "data.access_token")

    @abstractmethod
    def endpoints(self, settings) -> List["EndpointConfig"]:  # noqa: F821
        """Build this carrier's EndpointConfigs from application settings."""
        pass

    def history_query(self, keys: CorrelationKeySet, declared: tuple) -> Dict[str, str]:
        """
        Query parameters for the shipment-history endpoint.

        The default sends every correlation key the endpoint declares.
        """
        params = keys.as_params()
        return {name: value for name, value in params.items() if name in declared}

    def wire_params(self, params: Dict[str, str]) -> Dict[str, str]:
        """Rename query parameters to the carrier's spelling just before sending."""
        return params

    def history_record(self, response: Any) -> Dict[str, Any]:
        return history_record(response)

    def extract_token(self, response: Any) -> Optional[str]:
        for path in self.token_paths:
            value = get_path(response, path)
            if isinstance(value, str) and value:
                return value
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r})"
