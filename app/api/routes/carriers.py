"""
Carrier Gateway Routes

One surface for every configured carrier:
- POST /logistics/{carrier}/auth
- POST /logistics/{carrier}/rate-quotes
- POST /logistics/{carrier}/bills-of-lading
- POST /logistics/{carrier}/pickup-requests
- GET  /logistics/{carrier}/shipment-history
- GET  /logistics/{carrier}/bills-of-lading/pdf
- POST /logistics/status-sync      (runs one poll cycle now)

Submit endpoints take the caller's partial payload as the JSON body and an
optional ?orderId= to store the carrier response on a shipped order.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from app.api.deps import (
    get_bearer_token,
    get_gateway,
    get_registry,
    get_status_poller,
    get_status_scheduler,
)
from app.jobs.status_poller import StatusPoller, StatusPollScheduler
from app.modules.shipping.registry import EndpointRegistry
from app.schemas.logistics import AuthRequest, PollSummaryResponse
from app.services.gateway_service import CarrierGatewayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logistics", tags=["logistics"])


@router.get("/carriers")
async def list_carriers(registry: EndpointRegistry = Depends(get_registry)):
    """Configured carriers and the operations each supports."""
    return {
        "carriers": [
            {
                "shippingCompanyName": code,
                "description": getattr(registry.carrier(code), "description", ""),
                "operations": registry.operations(code),
            }
            for code in registry.carriers()
        ]
    }


@router.post("/status-sync", response_model=PollSummaryResponse)
async def run_status_sync(
    poller: StatusPoller = Depends(get_status_poller),
    scheduler: Optional[StatusPollScheduler] = Depends(get_status_scheduler),
):
    """Run one poll cycle now, through the scheduler when it is running."""
    if scheduler is not None:
        summary = await scheduler.run_once()
    else:
        summary = await poller.run_cycle()
    return summary.to_dict()


@router.post("/{carrier}/auth")
async def authenticate(
    carrier: str,
    credentials: AuthRequest,
    gateway: CarrierGatewayService = Depends(get_gateway),
):
    data = await gateway.authenticate(carrier, credentials.username, credentials.password)
    return {
        "message": f"Authentication successful for {carrier.lower()}",
        "shippingCompanyName": carrier.lower(),
        "data": data,
    }


@router.post("/{carrier}/rate-quotes")
async def create_rate_quote(
    carrier: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    order_id: Optional[int] = Query(None, alias="orderId"),
    token: str = Depends(get_bearer_token),
    gateway: CarrierGatewayService = Depends(get_gateway),
):
    return await gateway.create_rate_quote(carrier, token, payload, order_id)


@router.post("/{carrier}/bills-of-lading")
async def create_bill_of_lading(
    carrier: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    order_id: Optional[int] = Query(None, alias="orderId"),
    token: str = Depends(get_bearer_token),
    gateway: CarrierGatewayService = Depends(get_gateway),
):
    return await gateway.create_bill_of_lading(carrier, token, payload, order_id)


@router.get("/{carrier}/bills-of-lading/pdf")
async def download_bill_of_lading_pdf(
    carrier: str,
    uri: Optional[str] = Query(None, description="Relative document URI from the BOL response"),
    token: str = Depends(get_bearer_token),
    gateway: CarrierGatewayService = Depends(get_gateway),
):
    return await gateway.download_bol_pdf(carrier, token, uri)


@router.post("/{carrier}/pickup-requests")
async def create_pickup_request(
    carrier: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    order_id: Optional[int] = Query(None, alias="orderId"),
    token: str = Depends(get_bearer_token),
    gateway: CarrierGatewayService = Depends(get_gateway),
):
    return await gateway.create_pickup_request(carrier, token, payload, order_id)


@router.get("/{carrier}/shipment-history")
async def get_shipment_history(
    carrier: str,
    request: Request,
    token: str = Depends(get_bearer_token),
    gateway: CarrierGatewayService = Depends(get_gateway),
):
    """Query parameters are passed through; only those the carrier declares are sent."""
    return await gateway.get_shipment_history(carrier, token, dict(request.query_params))
