"""
3PL Giga FedEx record store

CRUD for FedEx tracking records. Same session-per-call shape as the order
store; a duplicate tracking number surfaces as ConflictError.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from app.core.database import AsyncSessionLocal
from app.core.exceptions import ConflictError, ErrorMessages, NotFoundError, ValidationError
from app.models.fedex_record import FedexRecord

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

SORT_COLUMNS = {
    "createdAt": FedexRecord.created_at,
    "updatedAt": FedexRecord.updated_at,
    "id": FedexRecord.id,
    "trackingNo": FedexRecord.tracking_no,
}


class FedexRecordStore:
    """FedEx tracking records backed by the async SQLAlchemy session factory."""

    def __init__(self, session_factory=AsyncSessionLocal):
        self._session_factory = session_factory

    async def create_many(self, records: List[Dict[str, Any]]) -> List[FedexRecord]:
        """Insert all records in one transaction; any duplicate rejects the batch."""
        rows = [
            FedexRecord(
                tracking_no=record["tracking_no"],
                fedex_json=record.get("fedex_json") or {},
                upload_array=record.get("upload_array") or [],
            )
            for record in records
        ]
        async with self._session_factory() as db:
            db.add_all(rows)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                logger.warning(f"Duplicate tracking number on 3PL FedEx insert: {e.orig}")
                raise ConflictError(
                    ErrorMessages.DUPLICATE_TRACKING_NO([r.tracking_no for r in rows])
                ) from e
            for row in rows:
                await db.refresh(row)
        logger.info(f"Created {len(rows)} 3PL FedEx record(s)")
        return rows

    async def list_records(
        self,
        page: int = 1,
        limit: int = 50,
        tracking_no: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[FedexRecord], int, int]:
        """Returns (records, total_count, effective_limit). trackingNo matches case-insensitive substrings."""
        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        filters = []
        if tracking_no:
            filters.append(FedexRecord.tracking_no.ilike(f"%{tracking_no}%"))

        column = SORT_COLUMNS.get(sort_by, FedexRecord.created_at)
        ordering = column.asc() if sort_order.lower() == "asc" else column.desc()

        async with self._session_factory() as db:
            total = await db.scalar(select(func.count(FedexRecord.id)).where(*filters))
            result = await db.execute(
                select(FedexRecord)
                .where(*filters)
                .order_by(ordering)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return list(result.scalars().all()), total or 0, limit

    async def get(self, record_id: int) -> FedexRecord:
        async with self._session_factory() as db:
            record = await db.get(FedexRecord, record_id)
            if record is None:
                raise NotFoundError(ErrorMessages.FEDEX_RECORD_NOT_FOUND)
            return record

    async def delete(self, record_id: int) -> FedexRecord:
        """Delete one record and return it as it was."""
        async with self._session_factory() as db:
            record = await db.get(FedexRecord, record_id)
            if record is None:
                raise NotFoundError(ErrorMessages.FEDEX_RECORD_NOT_FOUND)
            await db.delete(record)
            await db.commit()
            return record

    async def delete_by_date_range(self, start: date, end: date) -> int:
        """Delete records created from the start of `start` to the end of `end` (UTC)."""
        if start > end:
            raise ValidationError(ErrorMessages.INVALID_DATE_RANGE)
        start_at = datetime.combine(start, time.min, tzinfo=timezone.utc)
        end_at = datetime.combine(end, time.max, tzinfo=timezone.utc)
        async with self._session_factory() as db:
            result = await db.execute(
                delete(FedexRecord).where(
                    FedexRecord.created_at >= start_at,
                    FedexRecord.created_at <= end_at,
                )
            )
            await db.commit()
        deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} 3PL FedEx record(s) created {start}..{end}")
        return deleted
