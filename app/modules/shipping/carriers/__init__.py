"""
Carrier Registry

- Carrier classes self-register with @register_carrier
- Codes are stored lower-cased; lookups are case-insensitive
"""
from typing import Dict, List, Optional, Type
import logging

from app.modules.shipping.carriers.base import BaseCarrier

logger = logging.getLogger(__name__)

# Registry of carrier implementations
_CARRIER_REGISTRY: Dict[str, Type[BaseCarrier]] = {}


def register_carrier(code: str):
    """
    Decorator to register a carrier implementation.

    Usage:
        @register_carrier("estes")
        class EstesCarrier(BaseCarrier):
            ...
    """
    def decorator(cls: Type[BaseCarrier]):
        cls.code = code.lower()
        _CARRIER_REGISTRY[cls.code] = cls
        logger.debug(f"[REGISTRY] Registered carrier: {cls.code} -> {cls.__name__}")
        return cls
    return decorator


def get_carrier_class(code: str) -> Optional[Type[BaseCarrier]]:
    return _CARRIER_REGISTRY.get(code.lower())


def get_registered_carriers() -> List[str]:
    """Get list of all registered carrier codes."""
    return list(_CARRIER_REGISTRY.keys())


# Import carriers to trigger registration
# These imports must be at the bottom to avoid circular imports
from app.modules.shipping.carriers.estes import EstesCarrier  # noqa: E402, F401
from app.modules.shipping.carriers.xpo import XPOCarrier  # noqa: E402, F401
