"""Clients, the service catalog, and services contracted by clients"""
from sqlalchemy import Column, String, Float, Text, Boolean, Date, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow, enum_values


class ClientType(str, enum.Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"


class ServiceType(str, enum.Enum):
    SERVICE = "service"
    SOFTWARE = "software"
    SELLER_PROVIDER = "seller/provider"
    INSTALLATION = "installation"
    CONFIGURATION = "configuration"


class ServiceCharacteristic(str, enum.Enum):
    REMOTE = "remote"
    IN_PRESENCE = "in_presence"
    ONE_TIME = "one_time"
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"


class BillingFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    WEEKLY = "weekly"
    ONE_TIME = "one_time"


class Client(Base):
    __tablename__ = "clients"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text, nullable=True)
    type = Column(SQLEnum(ClientType, values_callable=enum_values, name="client_type"), nullable=False)
    start_date = Column(Date, nullable=True)
    contact_info = Column(JSON, nullable=True)  # {"phone", "whatsapp", "email"}
    is_active = Column(Boolean, default=True, nullable=False)
    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    services = relationship("ClientService", back_populates="client", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Client {self.name}>"


class Service(Base):
    """Catalog entry that can be sold to clients"""
    __tablename__ = "services"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(SQLEnum(ServiceType, values_callable=enum_values, name="service_type"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    client_services = relationship("ClientService", back_populates="service", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Service {self.name}>"


class ClientService(Base):
    """A priced, scheduled service assigned to a client"""
    __tablename__ = "client_services"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    client_id = Column(GUID, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(GUID, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    characteristics = Column(JSON, nullable=False, default=list)
    price = Column(Float, nullable=False)
    frequency = Column(SQLEnum(BillingFrequency, values_callable=enum_values, name="billing_frequency"),
                       nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    contract_file = Column(String(500), nullable=True)
    contract_file_upload_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    client = relationship("Client", back_populates="services")
    service = relationship("Service", back_populates="client_services")


class UserClientPermission(Base):
    __tablename__ = "user_client_permissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    can_view_clients = Column(Boolean, default=False, nullable=False)
    can_manage_clients = Column(Boolean, default=False, nullable=False)
    can_delete_clients = Column(Boolean, default=False, nullable=False)
    can_manage_access = Column(Boolean, default=False, nullable=False)
    granted_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    user = relationship("User", foreign_keys=[user_id])
