"""Inventory: stock items, quantity movements and per-user stock permissions"""
from sqlalchemy import Column, String, Integer, Float, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow


class StockItem(Base):
    __tablename__ = "stock_items"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    cost = Column(Float, default=0, nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    assigned_user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    assigned_user = relationship("User")
    movements = relationship("StockMovement", back_populates="stock_item", cascade="all, delete-orphan",
                             order_by="StockMovement.created_at.desc()")

    def __repr__(self):
        return f"<StockItem {self.name} x{self.quantity}>"


class StockMovement(Base):
    """One quantity change on a stock item"""
    __tablename__ = "stock_movements"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    stock_item_id = Column(GUID, ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    change = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    stock_item = relationship("StockItem", back_populates="movements")
    user = relationship("User")


class UserStockPermission(Base):
    __tablename__ = "user_stock_permissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    can_view_stock = Column(Boolean, default=False, nullable=False)
    can_manage_stock = Column(Boolean, default=False, nullable=False)
    can_adjust_quantities = Column(Boolean, default=False, nullable=False)
    granted_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    user = relationship("User", foreign_keys=[user_id])
    granted_by = relationship("User", foreign_keys=[granted_by_id])
