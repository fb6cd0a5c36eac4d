"""
Unit Model

A sellable property lot identified by block + unit number.
"""
import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from inventory_api.lib.clock import utcnow
from inventory_api.lib.database import Base


class Unit(Base):
    __tablename__ = "units"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    unit_number = Column(Integer, nullable=False)  # unique within a block only
    block_number = Column(Integer, nullable=False)  # 1..21
    area_m2 = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    price = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="available")  # available, reserved, sold
    buyer_name = Column(String(255), nullable=True)
    buyer_phone = Column(String(50), nullable=True)
    sales_employee = Column(String(255), nullable=True)
    accountant_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    reservation_expires_at = Column(DateTime, nullable=True)  # null = permanent hold or not reserved
    is_residential = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('block_number', 'unit_number', name='uq_unit_block_number'),
        CheckConstraint('block_number >= 1', name='ck_unit_block_range'),
        CheckConstraint('area_m2 > 0', name='ck_unit_area_positive'),
        CheckConstraint('price >= 0', name='ck_unit_price_non_negative'),
        CheckConstraint("status IN ('available', 'reserved', 'sold')", name='ck_unit_status'),
        Index('ix_units_status', 'status'),
        Index('ix_units_block', 'block_number'),
        Index('ix_units_unit_number', 'unit_number'),
    )

    def __repr__(self) -> str:
        return f"<Unit block={self.block_number} #{self.unit_number} {self.status}>"
