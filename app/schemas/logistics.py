"""
Logistics Schemas

Pydantic models for the carrier gateway and shipped-order endpoints.
JSON bodies use camelCase (orderId, marketplaceRef, ...); Python attributes
are snake_case.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.core.exceptions import ErrorMessages


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ==================== Carrier Gateway ====================


class AuthRequest(CamelModel):
    """Carrier credentials; the resulting token is stored per carrier."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class PollSummaryResponse(CamelModel):
    updated: int
    skipped: int
    errored: int
    unchanged: int
    total: int


# ==================== Shipped Orders ====================


class ShippedOrderBase(CamelModel):
    sku: Optional[str] = Field(None, max_length=255)
    marketplace_ref: Optional[str] = Field(None, max_length=255)
    orders_meta: Optional[Dict[str, Any]] = None
    rate_quote_result: Optional[Dict[str, Any]] = None
    bol_result: Optional[Dict[str, Any]] = None
    pickup_result: Optional[Dict[str, Any]] = None
    uploads: Optional[List[str]] = None


class ShippedOrderCreate(ShippedOrderBase):
    status: str = Field("pending", min_length=1, max_length=50)

    @field_validator("status")
    @classmethod
    def strip_status(cls, v):
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.REQUIRED_FIELD("status"))
        return v


class ShippedOrderUpdate(ShippedOrderBase):
    status: Optional[str] = Field(None, max_length=50)

    @field_validator("status")
    @classmethod
    def strip_status(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.REQUIRED_FIELD("status"))
        return v


class ShippedOrderResponse(ShippedOrderBase):
    id: int
    status: str
    uploads: List[str] = []
    created_at: datetime
    updated_at: datetime


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class ShippedOrderListResponse(CamelModel):
    orders: List[ShippedOrderResponse]
    pagination: PaginationMeta


class OrdersMetaItem(CamelModel):
    id: int
    orders_meta: Optional[Dict[str, Any]] = None


class DateRangeDelete(CamelModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_order(self):
        if self.start_date > self.end_date:
            raise ValueError(ErrorMessages.INVALID_DATE_RANGE)
        return self


class DeleteResult(CamelModel):
    message: str
    deleted_count: int


class StatusUpdateItem(CamelModel):
    id: int
    status: str = Field(..., min_length=1, max_length=50)

    @field_validator("status")
    @classmethod
    def strip_status(cls, v):
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.REQUIRED_FIELD("status"))
        return v


class BulkStatusUpdate(CamelModel):
    """
    Either one status for many ids:
        {"ids": [1, 2, 3], "status": "delivered"}
    or per-order statuses:
        {"updates": [{"id": 1, "status": "in_transit"}, ...]}
    """
    ids: Optional[List[int]] = None
    status: Optional[str] = Field(None, max_length=50)
    updates: Optional[List[StatusUpdateItem]] = None

    @model_validator(mode="after")
    def check_shape(self):
        if self.updates:
            return self
        if self.ids and self.status and self.status.strip():
            self.status = self.status.strip()
            return self
        raise ValueError('Provide either "ids" with "status", or a non-empty "updates" list')

    def grouped(self) -> Dict[str, List[int]]:
        """Order ids grouped by target status."""
        if self.updates:
            groups: Dict[str, List[int]] = {}
            for item in self.updates:
                groups.setdefault(item.status, []).append(item.id)
            return groups
        return {self.status: list(self.ids)}


class BulkStatusResult(CamelModel):
    message: str
    updated_count: int
    by_status: Dict[str, int]


# ==================== 3PL Giga FedEx ====================


class FedexRecordIn(CamelModel):
    tracking_no: str = Field(..., min_length=1, max_length=255)
    fedex_json: Optional[Dict[str, Any]] = None
    upload_array: Optional[List[str]] = None

    @field_validator("tracking_no")
    @classmethod
    def strip_tracking_no(cls, v):
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.REQUIRED_FIELD("trackingNo"))
        return v


class FedexRecordCreate(CamelModel):
    """
    One record:
        {"trackingNo": "TRACK123", "fedexJson": {...}}
    Several tracking numbers, fedexJson matched by position:
        {"trackingNo": "TRACK123,TRACK456", "fedexJson": [{...}, {...}]}
    or explicit records:
        {"records": [{"trackingNo": "TRACK123", "fedexJson": {...}}, ...]}

    uploadArray given at the top level applies to every record.
    """
    tracking_no: Optional[Union[str, List[str]]] = None
    fedex_json: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    upload_array: Optional[List[str]] = None
    records: Optional[List[FedexRecordIn]] = None

    @model_validator(mode="after")
    def check_shape(self):
        items = self.to_records()
        if not items:
            raise ValueError(ErrorMessages.REQUIRED_FIELD("trackingNo"))
        tracking_nos = [item["tracking_no"] for item in items]
        repeated = sorted({t for t in tracking_nos if tracking_nos.count(t) > 1})
        if repeated:
            raise ValueError(f"Tracking numbers repeated in request: {', '.join(repeated)}")
        return self

    def _tracking_nos(self) -> List[str]:
        if self.tracking_no is None:
            return []
        values = self.tracking_no if isinstance(self.tracking_no, list) else self.tracking_no.split(",")
        return [v.strip() for v in values if v and v.strip()]

    def to_records(self) -> List[Dict[str, Any]]:
        """Flatten the request into store-ready dicts."""
        if self.records:
            return [
                {
                    "tracking_no": r.tracking_no,
                    "fedex_json": r.fedex_json or {},
                    "upload_array": r.upload_array or self.upload_array or [],
                }
                for r in self.records
            ]

        tracking_nos = self._tracking_nos()
        if isinstance(self.fedex_json, list):
            blobs = self.fedex_json
        else:
            blobs = [self.fedex_json] if len(tracking_nos) == 1 else []
        return [
            {
                "tracking_no": tracking_no,
                "fedex_json": (blobs[i] if i < len(blobs) else None) or {},
                "upload_array": list(self.upload_array or []),
            }
            for i, tracking_no in enumerate(tracking_nos)
        ]


class FedexRecordResponse(CamelModel):
    id: int
    tracking_no: str
    fedex_json: Dict[str, Any] = {}
    upload_array: List[str] = []
    created_at: datetime
    updated_at: datetime


class FedexRecordCreateResult(CamelModel):
    message: str
    count: int
    records: List[FedexRecordResponse]


class FedexRecordListResponse(CamelModel):
    records: List[FedexRecordResponse]
    pagination: PaginationMeta


class FedexRecordDeleteResult(CamelModel):
    message: str
    record: FedexRecordResponse
