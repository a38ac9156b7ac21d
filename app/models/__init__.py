from app.models.shipped_order import ShippedOrder
from app.models.carrier_token import CarrierToken
from app.models.fedex_record import FedexRecord

__all__ = [
    "ShippedOrder",
    "CarrierToken",
    "FedexRecord",
]
