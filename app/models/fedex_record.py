"""
3PL Giga FedEx record

FedEx tracking numbers handed over by the 3PL, each with the raw FedEx
tracking JSON captured for it. Tracking numbers are unique.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from app.core.database import Base
from app.core.utils import utcnow


class FedexRecord(Base):
    __tablename__ = "logistics_3pl_giga_fedex"
    __table_args__ = (
        Index("ix_logistics_3pl_giga_fedex_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    tracking_no = Column(String(255), unique=True, nullable=False)
    fedex_json = Column(JSON, nullable=False, default=dict)

    # Document paths; the files themselves live elsewhere
    upload_array = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<FedexRecord {self.id} tracking_no={self.tracking_no}>"
