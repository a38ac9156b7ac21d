"""
API dependencies

Long-lived collaborators (registry, HTTP client, stores, poll scheduler) are
created in the app lifespan and kept on app.state; handlers receive them
through these dependencies so tests can override each one.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.exceptions import AuthenticationError, ErrorMessages
from app.core.http_client import CarrierHTTPClient
from app.jobs.status_poller import StatusPoller, StatusPollScheduler
from app.modules.shipping.registry import EndpointRegistry
from app.services.fedex_record_store import FedexRecordStore
from app.services.gateway_service import CarrierGatewayService
from app.services.order_store import SqlAlchemyOrderStore

security = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Caller's carrier token from `Authorization: Bearer ...`."""
    if credentials is None or not credentials.credentials.strip():
        raise AuthenticationError(ErrorMessages.MISSING_TOKEN)
    return credentials.credentials.strip()


def get_registry(request: Request) -> EndpointRegistry:
    return request.app.state.registry


def get_http_client(request: Request) -> CarrierHTTPClient:
    return request.app.state.http_client


def get_order_store(request: Request) -> SqlAlchemyOrderStore:
    return request.app.state.order_store


def get_fedex_record_store(request: Request) -> FedexRecordStore:
    return request.app.state.fedex_record_store


def get_gateway(
    registry: EndpointRegistry = Depends(get_registry),
    client: CarrierHTTPClient = Depends(get_http_client),
    store: SqlAlchemyOrderStore = Depends(get_order_store),
) -> CarrierGatewayService:
    return CarrierGatewayService(registry, client, store)


def get_status_poller(
    gateway: CarrierGatewayService = Depends(get_gateway),
    store: SqlAlchemyOrderStore = Depends(get_order_store),
) -> StatusPoller:
    return StatusPoller(gateway, store)


def get_status_scheduler(request: Request) -> Optional[StatusPollScheduler]:
    """The running poll scheduler, or None when polling is disabled."""
    return getattr(request.app.state, "status_scheduler", None)
