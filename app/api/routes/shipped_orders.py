"""
Shipped Order Routes

CRUD for logistics shipped orders plus the bulk operations the operations
team uses: delete by creation date range and bulk status updates.
"""
import logging
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_order_store
from app.schemas.logistics import (
    BulkStatusResult,
    BulkStatusUpdate,
    DateRangeDelete,
    DeleteResult,
    OrdersMetaItem,
    PaginationMeta,
    ShippedOrderCreate,
    ShippedOrderListResponse,
    ShippedOrderResponse,
    ShippedOrderUpdate,
)
from app.services.order_store import SqlAlchemyOrderStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logistics/shipped-orders", tags=["shipped-orders"])


@router.post("", response_model=ShippedOrderResponse, status_code=201)
async def create_shipped_order(
    order_in: ShippedOrderCreate,
    store: SqlAlchemyOrderStore = Depends(get_order_store),
):
    order = await store.create(order_in.model_dump())
    logger.info(f"Created shipped order {order.id}")
    return order


@router.get("", response_model=ShippedOrderListResponse)
async def list_shipped_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    sku: Optional[str] = None,
    marketplace_ref: Optional[str] = Query(None, alias="marketplaceRef"),
    status: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy", pattern="^(createdAt|updatedAt|id)$"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    store: SqlAlchemyOrderStore = Depends(get_order_store),
):
    orders, total, limit = await store.list_orders(
        page=page,
        limit=limit,
        sku=sku,
        marketplace_ref=marketplace_ref,
        status=status,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ShippedOrderListResponse(
        orders=[ShippedOrderResponse.model_validate(o) for o in orders],
        pagination=PaginationMeta(
            page=page,
            limit=limit,
            total_count=total,
            total_pages=math.ceil(total / limit) if total else 0,
            has_next_page=page * limit < total,
            has_previous_page=page > 1,
        ),
    )


@router.get("/orders-meta", response_model=List[OrdersMetaItem])
async def list_orders_meta(store: SqlAlchemyOrderStore = Depends(get_order_store)):
    rows = await store.list_orders_meta()
    return [OrdersMetaItem(id=order_id, orders_meta=meta) for order_id, meta in rows]


@router.post("/delete-range", response_model=DeleteResult)
async def delete_shipped_orders_by_date_range(
    date_range: DateRangeDelete,
    store: SqlAlchemyOrderStore = Depends(get_order_store),
):
    deleted = await store.delete_by_date_range(date_range.start_date, date_range.end_date)
    logger.info(
        f"Deleted {deleted} shipped orders created {date_range.start_date}..{date_range.end_date}"
    )
    return DeleteResult(
        message=f"Deleted {deleted} logistics shipped orders",
        deleted_count=deleted,
    )


@router.patch("/status", response_model=BulkStatusResult)
async def bulk_update_status(
    request: BulkStatusUpdate,
    store: SqlAlchemyOrderStore = Depends(get_order_store),
):
    counts = await store.bulk_update_status(request.grouped())
    total = sum(counts.values())
    return BulkStatusResult(
        message=f"Updated status for {total} logistics shipped orders",
        updated_count=total,
        by_status=counts,
    )


@router.get("/{order_id}", response_model=ShippedOrderResponse)
async def get_shipped_order(
    order_id: int,
    store: SqlAlchemyOrderStore = Depends(get_order_store),
):
    return await store.get(order_id)


@router.put("/{order_id}", response_model=ShippedOrderResponse)
async def update_shipped_order(
    order_id: int,
    order_in: ShippedOrderUpdate,
    store: SqlAlchemyOrderStore = Depends(get_order_store),
):
    return await store.update(order_id, order_in.model_dump(exclude_unset=True))


@router.delete("/{order_id}", response_model=DeleteResult)
async def delete_shipped_order(
    order_id: int,
    store: SqlAlchemyOrderStore = Depends(get_order_store),
):
    await store.delete(order_id)
    logger.info(f"Deleted shipped order {order_id}")
    return DeleteResult(message=f"Logistics shipped order {order_id} deleted", deleted_count=1)
