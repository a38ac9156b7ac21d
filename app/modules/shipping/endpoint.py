"""EndpointConfig: one (carrier, operation) request descriptor."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from app.modules.shipping.templates import Node, render

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class EndpointConfig:
    """
    Immutable request descriptor.

    Attributes:
        carrier: carrier code as configured (lookups are case-insensitive)
        operation: operation name, matched exactly ("auth", "createBillOfLading")
        url: absolute request URL
        method: HTTP method
        headers: carrier headers; an "Authorization: Bearer " placeholder is
            filled with the caller's token at send time
        body_schema: template tree for the request body, None for GETs
        query_parameters: names the endpoint accepts as query parameters
        base_url: carrier base URL the endpoint was built from
    """
    carrier: str
    operation: str
    url: str
    method: str = "POST"
    headers: Mapping[str, str] = field(default_factory=dict)
    body_schema: Optional[Node] = None
    query_parameters: Tuple[str, ...] = ()
    base_url: str = ""
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "query_parameters", tuple(self.query_parameters))

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return JSON_CONTENT_TYPE

    @property
    def is_configured(self) -> bool:
        """False when the carrier's base URL was never set."""
        return self.url.startswith(("http://", "https://"))

    def body_template(self) -> Dict[str, Any]:
        """Fresh placeholder body (empty when the endpoint takes none)."""
        if self.body_schema is None:
            return {}
        rendered = render(self.body_schema)
        return rendered if isinstance(rendered, dict) else {}
