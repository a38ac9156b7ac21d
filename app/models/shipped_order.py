"""
Logistics shipped order

One row per shipment. Carrier responses are stored verbatim as JSON so the
status poller can derive correlation keys from them later. Rows are never
deleted automatically.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from app.core.database import Base
from app.core.utils import utcnow


class ShippedOrder(Base):
    __tablename__ = "logistics_shipped_orders"
    __table_args__ = (
        Index("ix_logistics_shipped_orders_status", "status"),
        Index("ix_logistics_shipped_orders_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    sku = Column(String(255), nullable=True, index=True)
    marketplace_ref = Column(String(255), nullable=True, index=True)

    # Free-form order metadata (carrier, po, exl, ...)
    orders_meta = Column(JSON, nullable=True)

    # Carrier responses, written by the submit endpoints
    rate_quote_result = Column(JSON, nullable=True)
    bol_result = Column(JSON, nullable=True)
    pickup_result = Column(JSON, nullable=True)

    status = Column(String(50), nullable=False, default="pending")
    uploads = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<ShippedOrder {self.id} status={self.status}>"
