"""
Carrier HTTP Client

Outbound transport for every carrier call:
- Explicit timeout on every request (one slow carrier cannot stall a poll tick)
- Per-carrier token bucket so a poll cycle cannot flood one carrier
- Non-2xx bodies reduced to a single readable message
- Network failures and timeouts surfaced as CarrierError(503)

Usage:
    async with CarrierHTTPClient() as client:
        data = await client.send(endpoint, token=token, body=encoded)
"""
import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import CarrierError, ErrorMessages
from app.modules.shipping.errors import extract_error_message

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class RateLimitConfig:
    """Configuration for per-carrier rate limiting."""
    requests_per_second: float = 2.0
    burst_limit: int = 5


class TokenBucket:
    """
    Classic token bucket.

    Tokens refill continuously at `rate` per second up to `capacity`.
    acquire() waits until a whole token is available and consumes it.
    """

    def __init__(
        self,
        rate: float,
        capacity: int,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.rate = rate
        self.capacity = max(1, capacity)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self.capacity)
        self._updated = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self) -> float:
        """Take one token, sleeping as needed. Returns seconds waited."""
        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return waited
                if self.rate <= 0:
                    # No refill configured; never block forever
                    return waited
                delay = (1 - self._tokens) / self.rate
                waited += delay
                await self._sleep(delay)


def mask_token(token: Optional[str]) -> str:
    """Render a bearer token safe for logs."""
    if not token:
        return "missing"
    return "***" + token[-4:]


class CarrierHTTPClient:
    """
    Async transport shared by the gateway service and the status poller.

    The underlying httpx.AsyncClient can be replaced (tests inject a
    MockTransport) via the `transport` argument.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        rate_limit_config: Optional[RateLimitConfig] = None,
        error_message_max_length: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.timeout = timeout if timeout is not None else settings.CARRIER_HTTP_TIMEOUT_SECONDS
        self.rate_limit_config = rate_limit_config or RateLimitConfig(
            requests_per_second=settings.CARRIER_RATE_LIMIT_PER_SECOND,
            burst_limit=settings.CARRIER_RATE_LIMIT_BURST,
        )
        self.error_message_max_length = (
            error_message_max_length or settings.CARRIER_ERROR_MESSAGE_MAX_LENGTH
        )
        self._transport = transport
        self._clock = clock
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None
        self._buckets: Dict[str, TokenBucket] = {}

    async def __aenter__(self):
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def init(self):
        """Initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def bucket_for(self, carrier: str) -> TokenBucket:
        key = carrier.lower()
        bucket = self._buckets.get(key)
        if bucket is None:
            cfg = self.rate_limit_config
            bucket = TokenBucket(
                cfg.requests_per_second,
                cfg.burst_limit,
                clock=self._clock,
                sleep=self._sleep,
            )
            self._buckets[key] = bucket
        return bucket

    @staticmethod
    def build_headers(headers: Dict[str, str], token: Optional[str]) -> Dict[str, str]:
        """Copy configured headers, filling the bearer placeholder with the caller's token."""
        result = {}
        for name, value in headers.items():
            if name.lower() == "authorization" and value.strip().lower() == "bearer":
                if token:
                    result[name] = f"Bearer {token}"
                continue
            result[name] = value
        if token and not any(name.lower() == "authorization" for name in result):
            result["Authorization"] = f"Bearer {token}"
        return result

    async def send(
        self,
        endpoint,
        token: Optional[str] = None,
        body: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
    ) -> Any:
        """
        Dispatch one request described by an EndpointConfig.

        Args:
            endpoint: EndpointConfig supplying method, URL and headers
            token: caller bearer token, substituted into the Authorization header
            body: already encoded request body
            params: query parameters
            url: overrides endpoint.url (document downloads)

        Returns:
            Parsed JSON body ({} for an empty 2xx body)

        Raises:
            CarrierError: non-2xx, network failure, timeout or unreadable body
        """
        if self._client is None:
            await self.init()

        target = url or endpoint.url
        carrier = endpoint.carrier
        operation = endpoint.operation

        waited = await self.bucket_for(carrier).acquire()
        if waited > 0:
            logger.info(f"[RATE_LIMIT] {carrier}: waited {waited:.2f}s before {operation}")

        logger.debug(
            f"[CARRIER] {endpoint.method} {target} ({carrier}/{operation}) "
            f"token={mask_token(token)}"
        )

        try:
            response = await self._client.request(
                endpoint.method,
                target,
                headers=self.build_headers(dict(endpoint.headers), token),
                content=body,
                params=params or None,
            )
        except httpx.TimeoutException as e:
            logger.error(f"[CARRIER] {carrier}/{operation}: timeout after {self.timeout}s: {e}")
            raise CarrierError(
                ErrorMessages.TIMEOUT_ERROR, carrier=carrier, operation=operation, status_code=503
            ) from e
        except httpx.RequestError as e:
            logger.error(f"[CARRIER] {carrier}/{operation}: network error: {type(e).__name__}: {e}")
            raise CarrierError(
                ErrorMessages.NETWORK_ERROR, carrier=carrier, operation=operation, status_code=503
            ) from e

        text = response.text

        if not response.is_success:
            message = extract_error_message(
                response.status_code, text, max_length=self.error_message_max_length
            )
            logger.warning(
                f"[CARRIER] {carrier}/{operation}: status {response.status_code}: {message}"
            )
            raise CarrierError(
                message,
                carrier=carrier,
                operation=operation,
                status_code=response.status_code,
                details={"carrier_status": response.status_code},
            )

        if not text.strip():
            return {}

        try:
            return json.loads(text)
        except ValueError as e:
            logger.error(f"[CARRIER] {carrier}/{operation}: unreadable success body")
            raise CarrierError(
                ErrorMessages.INVALID_CARRIER_RESPONSE,
                carrier=carrier,
                operation=operation,
                status_code=500,
            ) from e
