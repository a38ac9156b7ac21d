"""
Shipment Status Poller

Periodically reconciles stored shipped orders with carrier shipment history.

Per cycle:
1. Load every order whose status is not terminal
2. Derive correlation keys from the order's stored JSON (no keys -> skipped)
3. Look up the carrier's stored bearer token (no token -> skipped)
4. Query shipment history and map the result to a canonical status
5. Write the status only when it changes and does not regress

Orders are processed by a bounded worker pool; a failure on one order is
logged and counted and never stops the rest of the batch. The scheduler
runs a cycle immediately, then once per interval, until stopped.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, asdict
from typing import Awaitable, Callable, Optional

from app.core.config import settings
from app.core.utils import parse_duration
from app.modules.shipping.correlation import extract_correlation_keys, resolve_carrier
from app.modules.shipping.status import map_status, should_update
from app.services.gateway_service import CarrierGatewayService
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)

UPDATED = "updated"
SKIPPED = "skipped"
ERRORED = "errored"
UNCHANGED = "unchanged"


@dataclass
class PollCycleSummary:
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    unchanged: int = 0
    total: int = 0

    def record(self, outcome: str) -> None:
        setattr(self, outcome, getattr(self, outcome) + 1)

    def to_dict(self) -> dict:
        return asdict(self)


class StatusPoller:
    """Runs one reconciliation cycle over all pollable orders."""

    def __init__(
        self,
        gateway: CarrierGatewayService,
        store: OrderStore,
        max_workers: Optional[int] = None,
        default_carrier: Optional[str] = None,
        quote_id_as_load_number: Optional[bool] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.max_workers = max(1, max_workers or settings.STATUS_POLL_MAX_WORKERS)
        self.default_carrier = default_carrier or settings.STATUS_POLL_DEFAULT_CARRIER
        self.quote_id_as_load_number = (
            settings.STATUS_POLL_QUOTE_ID_AS_LOAD_NUMBER
            if quote_id_as_load_number is None
            else quote_id_as_load_number
        )

    async def run_cycle(self) -> PollCycleSummary:
        summary = PollCycleSummary()
        orders = await self.store.find_pollable()
        summary.total = len(orders)
        logger.info(f"[STATUS_POLL] Found {len(orders)} orders to check")

        if not orders:
            return summary

        semaphore = asyncio.Semaphore(self.max_workers)

        async def worker(order):
            async with semaphore:
                try:
                    outcome = await self._process_order(order)
                except Exception as e:
                    logger.error(
                        f"[STATUS_POLL] Error updating order ID {order.id}: "
                        f"{type(e).__name__}: {e}"
                    )
                    outcome = ERRORED
                summary.record(outcome)

        await asyncio.gather(*(worker(order) for order in orders))

        logger.info(
            f"[STATUS_POLL] Completed. Updated: {summary.updated}, Skipped: {summary.skipped}, "
            f"Errors: {summary.errored}, Unchanged: {summary.unchanged}, Total: {summary.total}"
        )
        return summary

    async def _process_order(self, order) -> str:
        keys = extract_correlation_keys(order, self.quote_id_as_load_number)
        if keys.is_empty():
            logger.info(f"[STATUS_POLL] No correlation keys for order ID {order.id}, skipping")
            return SKIPPED

        carrier = resolve_carrier(order, self.default_carrier)
        token = await self.store.get_token(carrier)
        if not token:
            logger.info(f"[STATUS_POLL] No token found for {carrier}, skipping order ID {order.id}")
            return SKIPPED

        response = await self.gateway.query_history(carrier, token, keys)
        if response is None:
            logger.info(
                f"[STATUS_POLL] {carrier} accepts none of {sorted(keys.as_params())} "
                f"for order ID {order.id}, skipping"
            )
            return SKIPPED

        impl = self.gateway.registry.carrier(carrier)
        new_status = map_status(impl.history_record(response))

        if not should_update(order.status, new_status):
            return UNCHANGED

        await self.store.update_status(order.id, new_status)
        logger.info(f"[STATUS_POLL] Updated order ID {order.id} status: {order.status} -> {new_status}")
        return UPDATED


class StatusPollScheduler:
    """
    Owns the recurring poll task.

    clock and sleep are injectable so tests can drive ticks without waiting.
    """

    def __init__(
        self,
        poller: StatusPoller,
        interval_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.poller = poller
        self.interval = (
            interval_seconds
            if interval_seconds is not None
            else parse_duration(settings.STATUS_UPDATE_TIME)
        )
        self._clock = clock
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._cycle_lock = asyncio.Lock()
        self.cycles = 0
        self.last_summary: Optional[PollCycleSummary] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the loop; returns the task handle."""
        if self.running:
            logger.warning("[STATUS_POLL] Scheduler already running")
            return self._task
        logger.info(f"[STATUS_POLL] Starting with interval {self.interval}s")
        self._task = asyncio.create_task(self._loop())
        return self._task

    async def stop(self) -> None:
        """Cancel the loop and wait for it to exit."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("[STATUS_POLL] Scheduler stopped")

    async def run_once(self) -> PollCycleSummary:
        """Run one cycle. Scheduled ticks and manual syncs never overlap."""
        async with self._cycle_lock:
            started = self._clock()
            try:
                summary = await self.poller.run_cycle()
            except Exception as e:
                # Failure to even load orders; the next tick retries
                logger.error(f"[STATUS_POLL] Cycle failed: {type(e).__name__}: {e}")
                summary = PollCycleSummary()
            self.cycles += 1
            self.last_summary = summary
        logger.debug(f"[STATUS_POLL] Cycle {self.cycles} took {self._clock() - started:.2f}s")
        return summary

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await self._sleep(self.interval)
