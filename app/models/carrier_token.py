"""
Carrier token

Last successful bearer token per carrier. Upserted on every authentication;
no history is kept.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime

from app.core.database import Base
from app.core.utils import utcnow


class CarrierToken(Base):
    __tablename__ = "carrier_tokens"

    id = Column(Integer, primary_key=True, index=True)
    # Stored lower-cased so uniqueness is case-insensitive
    carrier_name = Column(String(100), unique=True, nullable=False)
    token = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<CarrierToken {self.carrier_name}>"
