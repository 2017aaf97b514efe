"""Proformas, recurring expenses and their permission records"""
from sqlalchemy import Column, String, Float, Text, Boolean, Date, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow, enum_values


class ProformaStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ExpenseFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ExpenseStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class Proforma(Base):
    """
    A priced offer for an estimation, issued under a company.

    total_cost comes from the estimation and the company fields are a copy
    taken when the proforma is written, so a sent proforma does not change
    when the company is edited later.
    """
    __tablename__ = "proformas"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    proforma_number = Column(String(50), unique=True, nullable=False)
    estimation_id = Column(GUID, ForeignKey("estimations.id", ondelete="SET NULL"), nullable=True, index=True)
    company_id = Column(GUID, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)

    company_name = Column(String(255), nullable=True)
    company_address = Column(Text, nullable=True)
    company_phone = Column(String(50), nullable=True)
    company_email = Column(String(255), nullable=True)
    company_logo = Column(String(255), nullable=True)

    total_cost = Column(Float, default=0, nullable=False)
    profit_percentage = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    valid_until = Column(Date, nullable=True)
    status = Column(SQLEnum(ProformaStatus, values_callable=enum_values, name="proforma_status"),
                    default=ProformaStatus.DRAFT, nullable=False)
    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    created_by = relationship("User")
    estimation = relationship("Estimation")

    def recalculate_total(self) -> None:
        self.total_amount = round((self.total_cost or 0) * (1 + (self.profit_percentage or 0) / 100), 2)

    def __repr__(self):
        return f"<Proforma {self.proforma_number}>"


class Expense(Base):
    """A recurring outgoing payment"""
    __tablename__ = "expenses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    service_name = Column(String(255), nullable=False)
    beneficiary = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    frequency = Column(SQLEnum(ExpenseFrequency, values_callable=enum_values, name="expense_frequency"),
                       nullable=False)
    last_paid_date = Column(Date, nullable=True)
    next_payment_date = Column(Date, nullable=False)
    status = Column(SQLEnum(ExpenseStatus, values_callable=enum_values, name="expense_status"),
                    default=ExpenseStatus.ACTIVE, nullable=False)
    description = Column(Text, nullable=True)
    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    receipts = relationship("ExpenseReceipt", back_populates="expense", cascade="all, delete-orphan",
                            order_by="ExpenseReceipt.payment_date.desc()")

    def __repr__(self):
        return f"<Expense {self.service_name} -> {self.beneficiary}>"


class ExpenseReceipt(Base):
    """Proof of one payment made against an expense"""
    __tablename__ = "expense_receipts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    expense_id = Column(GUID, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_date = Column(Date, nullable=False)
    amount = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)
    file_name = Column(String(255), nullable=True)
    uploaded_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    expense = relationship("Expense", back_populates="receipts")


class UserProformaPermission(Base):
    __tablename__ = "user_proforma_permissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    can_view_proformas = Column(Boolean, default=False, nullable=False)
    can_manage_proformas = Column(Boolean, default=False, nullable=False)
    can_delete_proformas = Column(Boolean, default=False, nullable=False)
    can_manage_access = Column(Boolean, default=False, nullable=False)
    granted_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    user = relationship("User", foreign_keys=[user_id])


class UserExpensePermission(Base):
    __tablename__ = "user_expense_permissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    can_view_expenses = Column(Boolean, default=False, nullable=False)
    can_manage_expenses = Column(Boolean, default=False, nullable=False)
    can_delete_expenses = Column(Boolean, default=False, nullable=False)
    can_manage_access = Column(Boolean, default=False, nullable=False)
    granted_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    user = relationship("User", foreign_keys=[user_id])
