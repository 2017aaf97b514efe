"""Cost estimations built from stock items, and the companies proformas are issued under"""
from sqlalchemy import Column, String, Integer, Float, Text, Boolean, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow


class Company(Base):
    __tablename__ = "companies"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    # Stored file name under UPLOAD_DIR
    logo = Column(String(255), nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<Company {self.name}{' (default)' if self.is_default else ''}>"


class Estimation(Base):
    __tablename__ = "estimations"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    client_name = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    client_information = Column(Text, nullable=True)
    # Sum of the line items, kept in step by the estimation service
    total_cost = Column(Float, default=0, nullable=False)
    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    created_by = relationship("User")
    items = relationship("EstimationItem", back_populates="estimation", cascade="all, delete-orphan",
                         order_by="EstimationItem.created_at")

    def __repr__(self):
        return f"<Estimation {self.name} ({self.total_cost})>"


class EstimationItem(Base):
    """One stock item line; unit_cost is the stock cost when the line was added"""
    __tablename__ = "estimation_items"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    estimation_id = Column(GUID, ForeignKey("estimations.id", ondelete="CASCADE"), nullable=False, index=True)
    stock_item_id = Column(GUID, ForeignKey("stock_items.id", ondelete="SET NULL"), nullable=True)
    stock_item_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    estimation = relationship("Estimation", back_populates="items")
    stock_item = relationship("StockItem")

    def set_quantity(self, quantity: int) -> None:
        self.quantity = quantity
        self.total_cost = round(self.unit_cost * quantity, 2)
