"""
3PL Giga FedEx Routes

Tracking-number records received from the 3PL:
- POST   /logistics/3pl-giga-fedex                 one or many records
- GET    /logistics/3pl-giga-fedex                 paginated, ?trackingNo= filter
- GET    /logistics/3pl-giga-fedex/{id}
- DELETE /logistics/3pl-giga-fedex/{id}
- DELETE /logistics/3pl-giga-fedex?startDate=&endDate=
"""
import logging
import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_fedex_record_store
from app.schemas.logistics import (
    DeleteResult,
    FedexRecordCreate,
    FedexRecordCreateResult,
    FedexRecordDeleteResult,
    FedexRecordListResponse,
    FedexRecordResponse,
    PaginationMeta,
)
from app.services.fedex_record_store import FedexRecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logistics/3pl-giga-fedex", tags=["3pl-giga-fedex"])


@router.post("", response_model=FedexRecordCreateResult, status_code=201)
async def create_fedex_records(
    request: FedexRecordCreate,
    store: FedexRecordStore = Depends(get_fedex_record_store),
):
    records = await store.create_many(request.to_records())
    return FedexRecordCreateResult(
        message=f"Successfully created {len(records)} 3PL Giga FedEx record(s)",
        count=len(records),
        records=[FedexRecordResponse.model_validate(r) for r in records],
    )


@router.get("", response_model=FedexRecordListResponse)
async def list_fedex_records(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    tracking_no: Optional[str] = Query(None, alias="trackingNo"),
    sort_by: str = Query("createdAt", alias="sortBy", pattern="^(createdAt|updatedAt|id|trackingNo)$"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    store: FedexRecordStore = Depends(get_fedex_record_store),
):
    records, total, limit = await store.list_records(
        page=page,
        limit=limit,
        tracking_no=tracking_no,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return FedexRecordListResponse(
        records=[FedexRecordResponse.model_validate(r) for r in records],
        pagination=PaginationMeta(
            page=page,
            limit=limit,
            total_count=total,
            total_pages=math.ceil(total / limit) if total else 0,
            has_next_page=page * limit < total,
            has_previous_page=page > 1,
        ),
    )


@router.delete("", response_model=DeleteResult)
async def delete_fedex_records_by_date_range(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    store: FedexRecordStore = Depends(get_fedex_record_store),
):
    deleted = await store.delete_by_date_range(start_date, end_date)
    return DeleteResult(
        message=f"Successfully deleted {deleted} 3PL Giga FedEx record(s)",
        deleted_count=deleted,
    )


@router.get("/{record_id}", response_model=FedexRecordResponse)
async def get_fedex_record(
    record_id: int,
    store: FedexRecordStore = Depends(get_fedex_record_store),
):
    return await store.get(record_id)


@router.delete("/{record_id}", response_model=FedexRecordDeleteResult)
async def delete_fedex_record(
    record_id: int,
    store: FedexRecordStore = Depends(get_fedex_record_store),
):
    record = await store.delete(record_id)
    logger.info(f"Deleted 3PL FedEx record {record_id}")
    return FedexRecordDeleteResult(
        message="3PL Giga FedEx record deleted successfully",
        record=FedexRecordResponse.model_validate(record),
    )
