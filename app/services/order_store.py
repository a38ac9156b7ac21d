"""
Order Store

Persistence boundary for shipped orders and carrier tokens. The gateway
service and the status poller depend on the OrderStore protocol; the
SQLAlchemy implementation opens one short session per call so it can be
shared by request handlers and background jobs alike.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError

from app.core.database import AsyncSessionLocal
from app.core.exceptions import ConflictError, ErrorMessages, NotFoundError, ValidationError
from app.core.utils import utcnow
from app.models.carrier_token import CarrierToken
from app.models.shipped_order import ShippedOrder
from app.modules.shipping.status import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

SORT_COLUMNS = {
    "createdAt": ShippedOrder.created_at,
    "updatedAt": ShippedOrder.updated_at,
    "id": ShippedOrder.id,
}

# Columns a caller may set through create/update
WRITABLE_FIELDS = (
    "sku",
    "marketplace_ref",
    "orders_meta",
    "rate_quote_result",
    "bol_result",
    "pickup_result",
    "status",
    "uploads",
)

# Operation -> column receiving the carrier's success response
RESULT_FIELDS = {
    "createRateQuote": "rate_quote_result",
    "createBillOfLading": "bol_result",
    "createPickupRequest": "pickup_result",
}


class OrderStore(Protocol):
    """What the carrier gateway and poller need from persistence."""

    async def find_pollable(self) -> List[ShippedOrder]: ...

    async def update_status(self, order_id: int, status: str) -> None: ...

    async def get_token(self, carrier: str) -> Optional[str]: ...

    async def upsert_token(self, carrier: str, token: str) -> None: ...

    async def save_result(self, order_id: int, operation: str, result: Any) -> None: ...

    async def exists(self, order_id: int) -> bool: ...


class SqlAlchemyOrderStore:
    """OrderStore backed by the async SQLAlchemy session factory."""

    def __init__(self, session_factory=AsyncSessionLocal):
        self._session_factory = session_factory

    # ==========================================================================
    # Poller / gateway surface
    # ==========================================================================

    async def find_pollable(self) -> List[ShippedOrder]:
        """Orders whose status is not terminal (NULL status included)."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(ShippedOrder)
                .where(or_(
                    ShippedOrder.status.is_(None),
                    ShippedOrder.status.notin_(TERMINAL_STATUSES),
                ))
                .order_by(ShippedOrder.id)
            )
            return list(result.scalars().all())

    async def update_status(self, order_id: int, status: str) -> None:
        async with self._session_factory() as db:
            await db.execute(
                update(ShippedOrder)
                .where(ShippedOrder.id == order_id)
                .values(status=status, updated_at=utcnow())
            )
            await db.commit()

    async def get_token(self, carrier: str) -> Optional[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(CarrierToken.token).where(CarrierToken.carrier_name == carrier.lower())
            )
            return result.scalar_one_or_none()

    async def upsert_token(self, carrier: str, token: str) -> None:
        """Last successful authentication wins."""
        now = utcnow()
        stmt = insert(CarrierToken).values(
            carrier_name=carrier.lower(),
            token=token,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_update(
            index_elements=["carrier_name"],
            set_={"token": token, "updated_at": now},
        )
        async with self._session_factory() as db:
            await db.execute(stmt)
            await db.commit()
        logger.info(f"[CARRIER] Stored token for {carrier.lower()}")

    async def exists(self, order_id: int) -> bool:
        async with self._session_factory() as db:
            found = await db.scalar(select(ShippedOrder.id).where(ShippedOrder.id == order_id))
            return found is not None

    async def save_result(self, order_id: int, operation: str, result: Any) -> None:
        """Persist a carrier success response onto the order."""
        column = RESULT_FIELDS.get(operation)
        if column is None:
            return
        await self.update(order_id, {column: result})

    # ==========================================================================
    # Shipped-order CRUD
    # ==========================================================================

    async def _commit(self, db) -> None:
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Integrity error on shipped order write: {e.orig}")
            raise ConflictError(ErrorMessages.DUPLICATE_DATA) from e

    async def create(self, data: Dict[str, Any]) -> ShippedOrder:
        values = {k: v for k, v in data.items() if k in WRITABLE_FIELDS and v is not None}
        values.setdefault("uploads", [])
        async with self._session_factory() as db:
            order = ShippedOrder(**values)
            db.add(order)
            await self._commit(db)
            await db.refresh(order)
            return order

    async def get(self, order_id: int) -> ShippedOrder:
        async with self._session_factory() as db:
            order = await db.get(ShippedOrder, order_id)
            if order is None:
                raise NotFoundError(ErrorMessages.ORDER_NOT_FOUND(order_id))
            return order

    async def list_orders(
        self,
        page: int = 1,
        limit: int = 50,
        sku: Optional[str] = None,
        marketplace_ref: Optional[str] = None,
        status: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[ShippedOrder], int, int]:
        """Returns (orders, total_count, effective_limit)."""
        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        filters = []
        if sku:
            filters.append(ShippedOrder.sku == sku)
        if marketplace_ref:
            filters.append(ShippedOrder.marketplace_ref == marketplace_ref)
        if status:
            filters.append(ShippedOrder.status == status)

        column = SORT_COLUMNS.get(sort_by, ShippedOrder.created_at)
        ordering = column.asc() if sort_order.lower() == "asc" else column.desc()

        async with self._session_factory() as db:
            total = await db.scalar(select(func.count(ShippedOrder.id)).where(*filters))
            result = await db.execute(
                select(ShippedOrder)
                .where(*filters)
                .order_by(ordering)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return list(result.scalars().all()), total or 0, limit

    async def list_orders_meta(self) -> List[Tuple[int, Any]]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(ShippedOrder.id, ShippedOrder.orders_meta).order_by(ShippedOrder.created_at.desc())
            )
            return [(row.id, row.orders_meta) for row in result]

    async def update(self, order_id: int, data: Dict[str, Any]) -> ShippedOrder:
        """
        Raises:
            NotFoundError: no such order
            ConflictError: the order is delivered and `status` would change
        """
        values = {k: v for k, v in data.items() if k in WRITABLE_FIELDS}
        async with self._session_factory() as db:
            order = await db.get(ShippedOrder, order_id)
            if order is None:
                raise NotFoundError(ErrorMessages.ORDER_NOT_FOUND(order_id))
            new_status = values.get("status")
            if order.status in TERMINAL_STATUSES and new_status is not None and new_status != order.status:
                raise ConflictError(ErrorMessages.STATUS_LOCKED(order_id, order.status))
            for key, value in values.items():
                setattr(order, key, value)
            order.updated_at = utcnow()
            await self._commit(db)
            await db.refresh(order)
            return order

    async def delete(self, order_id: int) -> None:
        async with self._session_factory() as db:
            result = await db.execute(delete(ShippedOrder).where(ShippedOrder.id == order_id))
            if result.rowcount == 0:
                raise NotFoundError(ErrorMessages.ORDER_NOT_FOUND(order_id))
            await db.commit()

    async def delete_by_date_range(self, start: date, end: date) -> int:
        """Delete orders created from the start of `start` to the end of `end` (UTC)."""
        if start > end:
            raise ValidationError(ErrorMessages.INVALID_DATE_RANGE)
        start_at = datetime.combine(start, time.min, tzinfo=timezone.utc)
        end_at = datetime.combine(end, time.max, tzinfo=timezone.utc)
        async with self._session_factory() as db:
            result = await db.execute(
                delete(ShippedOrder).where(
                    ShippedOrder.created_at >= start_at,
                    ShippedOrder.created_at <= end_at,
                )
            )
            await db.commit()
            return result.rowcount or 0

    async def bulk_update_status(self, groups: Dict[str, List[int]]) -> Dict[str, int]:
        """
        Apply one UPDATE per target status; returns rows changed per status.

        Delivered orders are left as they are and not counted.
        """
        counts: Dict[str, int] = {}
        async with self._session_factory() as db:
            now = utcnow()
            for status, ids in groups.items():
                result = await db.execute(
                    update(ShippedOrder)
                    .where(
                        ShippedOrder.id.in_(ids),
                        ShippedOrder.status.notin_(TERMINAL_STATUSES),
                    )
                    .values(status=status, updated_at=now)
                )
                counts[status] = result.rowcount or 0
            await db.commit()
        logger.info(f"Bulk status update: {counts}")
        return counts
