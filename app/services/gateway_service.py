"""
Carrier Gateway Service

Turns a caller's partial payload into a carrier request and back:

    normalize -> merge into template -> validate -> clean -> encode -> send

Registry, transport and order store are passed in explicitly; nothing here
reads module-level state.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from app.core.exceptions import (
    AuthenticationError,
    CarrierError,
    ErrorMessages,
    NotFoundError,
    ValidationError,
)
from app.core.http_client import CarrierHTTPClient
from app.modules.shipping.carriers.base import BaseCarrier
from app.modules.shipping.cleaner import clean_payload, encode_body
from app.modules.shipping.correlation import CorrelationKeySet
from app.modules.shipping.endpoint import EndpointConfig
from app.modules.shipping.merge import merge
from app.modules.shipping.normalize import normalize_payload
from app.modules.shipping.registry import EndpointRegistry
from app.modules.shipping.validation import run_validation
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)

AUTH = "auth"
RATE_QUOTE = "createRateQuote"
BILL_OF_LADING = "createBillOfLading"
PICKUP_REQUEST = "createPickupRequest"
SHIPMENT_HISTORY = "getShipmentHistory"
BOL_PDF = "getBillOfLadingPdf"

SUBMIT_OPERATIONS = {
    RATE_QUOTE: "Rate quote",
    BILL_OF_LADING: "Bill of Lading",
    PICKUP_REQUEST: "Pickup request",
}


class CarrierGatewayService:
    """Unified entry point for every carrier operation."""

    def __init__(
        self,
        registry: EndpointRegistry,
        client: CarrierHTTPClient,
        store: Optional[OrderStore] = None,
    ):
        self.registry = registry
        self.client = client
        self.store = store

    # ==========================================================================
    # Resolution and body building
    # ==========================================================================

    def resolve(self, carrier: str, operation: str) -> Tuple[EndpointConfig, BaseCarrier]:
        """
        Find the endpoint for (carrier, operation).

        Raises:
            NotFoundError: unknown carrier, unknown operation, or no base URL configured
        """
        if not self.registry.has_carrier(carrier):
            raise NotFoundError(ErrorMessages.COMPANY_NOT_FOUND(carrier))
        endpoint = self.registry.lookup(carrier, operation)
        if endpoint is None:
            raise NotFoundError(ErrorMessages.ENDPOINT_NOT_FOUND(operation))
        if not endpoint.is_configured:
            raise NotFoundError(ErrorMessages.CONFIG_MISSING(endpoint.carrier))
        return endpoint, self.registry.carrier(carrier)

    def build_body(self, endpoint: EndpointConfig, payload: Optional[Dict[str, Any]]) -> str:
        """Normalize, merge, validate, clean and encode a caller payload."""
        if payload is not None and not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        merged = merge(endpoint.body_template(), normalize_payload(payload or {}))
        run_validation(endpoint.carrier, endpoint.operation, merged)
        return encode_body(clean_payload(merged), endpoint.content_type)

    @staticmethod
    def _require_token(token: Optional[str]) -> str:
        if not token or not token.strip():
            raise AuthenticationError(ErrorMessages.MISSING_TOKEN)
        return token.strip()

    # ==========================================================================
    # Operations
    # ==========================================================================

    async def authenticate(self, carrier: str, username: str, password: str) -> Dict[str, Any]:
        """
        Exchange credentials for a carrier token and store it.

        Raises:
            AuthenticationError: carrier rejected the credentials
            CarrierError: any other carrier failure, or no token in the response
        """
        endpoint, impl = self.resolve(carrier, AUTH)
        body = self.build_body(endpoint, {"username": username, "password": password})

        try:
            data = await self.client.send(endpoint, body=body)
        except CarrierError as e:
            if e.status_code in (401, 403):
                raise AuthenticationError(
                    e.message or ErrorMessages.AUTH_FAILED,
                    details={"carrier": endpoint.carrier},
                ) from e
            raise

        token = impl.extract_token(data)
        if not token:
            logger.error(f"[CARRIER] {endpoint.carrier}: authentication succeeded without a token")
            raise CarrierError(
                ErrorMessages.NO_TOKEN_IN_RESPONSE,
                carrier=endpoint.carrier,
                operation=AUTH,
                status_code=502,
            )

        if self.store is not None:
            await self.store.upsert_token(endpoint.carrier, token)

        logger.info(f"[CARRIER] {endpoint.carrier}: authenticated")
        return data

    async def submit(
        self,
        carrier: str,
        operation: str,
        token: Optional[str],
        payload: Optional[Dict[str, Any]],
        order_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Send a rate quote, BOL or pickup request.

        When `order_id` is given the response envelope is stored on that order.
        The order must exist before anything is sent to the carrier.

        Raises:
            NotFoundError: unknown carrier, operation or order
        """
        token = self._require_token(token)
        endpoint, _ = self.resolve(carrier, operation)
        if order_id is not None and self.store is not None:
            if not await self.store.exists(order_id):
                raise NotFoundError(ErrorMessages.ORDER_NOT_FOUND(order_id))
        body = self.build_body(endpoint, payload)

        data = await self.client.send(endpoint, token=token, body=body)

        label = SUBMIT_OPERATIONS.get(operation, operation)
        result = {
            "message": f"{label} created successfully for {endpoint.carrier}",
            "shippingCompanyName": endpoint.carrier,
            "data": data,
        }

        if order_id is not None and self.store is not None:
            await self.store.save_result(order_id, operation, result)
            logger.info(f"[CARRIER] {endpoint.carrier}/{operation}: stored result on order {order_id}")

        return result

    async def create_rate_quote(self, carrier, token, payload, order_id=None):
        return await self.submit(carrier, RATE_QUOTE, token, payload, order_id)

    async def create_bill_of_lading(self, carrier, token, payload, order_id=None):
        return await self.submit(carrier, BILL_OF_LADING, token, payload, order_id)

    async def create_pickup_request(self, carrier, token, payload, order_id=None):
        return await self.submit(carrier, PICKUP_REQUEST, token, payload, order_id)

    async def get_shipment_history(
        self,
        carrier: str,
        token: Optional[str],
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Look up shipment history with caller-supplied correlation parameters."""
        token = self._require_token(token)
        endpoint, impl = self.resolve(carrier, SHIPMENT_HISTORY)

        query = {
            name: str(value).strip()
            for name, value in (params or {}).items()
            if name in endpoint.query_parameters and value is not None and str(value).strip()
        }
        if not query:
            raise ValidationError(
                ErrorMessages.MISSING_QUERY_PARAMS,
                fields=list(endpoint.query_parameters),
            )

        data = await self.client.send(endpoint, token=token, params=impl.wire_params(query))
        return {
            "message": f"Shipment history retrieved successfully for {endpoint.carrier}",
            "shippingCompanyName": endpoint.carrier,
            "data": data,
        }

    async def query_history(self, carrier: str, token: str, keys: CorrelationKeySet) -> Optional[Any]:
        """
        History lookup from derived correlation keys (used by the poller).

        Returns None when the carrier accepts none of the available keys.
        """
        endpoint, impl = self.resolve(carrier, SHIPMENT_HISTORY)
        params = impl.history_query(keys, endpoint.query_parameters)
        if not params:
            return None
        return await self.client.send(endpoint, token=token, params=impl.wire_params(params))

    async def download_bol_pdf(self, carrier: str, token: Optional[str], uri: Optional[str]) -> Dict[str, Any]:
        """
        Fetch a BOL document. The carrier answers JSON carrying base64 PDF content.

        `uri` is the relative document path from the BOL response.
        """
        token = self._require_token(token)
        if not uri or not uri.strip():
            raise ValidationError(ErrorMessages.REQUIRED_FIELD("uri"), fields=["uri"])
        endpoint, _ = self.resolve(carrier, BOL_PDF)

        path = uri.strip()
        if not path.startswith("/"):
            path = f"/{path}"
        url = f"{endpoint.url.rstrip('/')}{path}"

        data = await self.client.send(endpoint, token=token, url=url)
        if isinstance(data, dict):
            return {**data, "shippingCompanyName": endpoint.carrier}
        return {"data": data, "shippingCompanyName": endpoint.carrier}
