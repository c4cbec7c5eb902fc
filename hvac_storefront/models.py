import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    return str(uuid.uuid4())


class PlanType(str, enum.Enum):
    """How a plan is priced"""

    FIXED = "fixed"  # one recurring price, billing_price_id on the plan row
    MINI_SPLIT = "mini_split"  # priced per head count from the pricing table


class MembershipStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Plan(Base):
    __tablename__ = "maintenance_plans"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)  # recurring price, USD
    billing_frequency = Column(String(20), nullable=False, default="annual")  # annual, semi_annual
    tune_ups_per_year = Column(Integer, nullable=False, default=2)
    priority_service = Column(Boolean, nullable=False, default=False)
    discount_percentage = Column(Integer, nullable=False, default=0)  # discount on repairs
    features = Column(JSON, default=list, nullable=True)
    plan_type = Column(String(20), nullable=False, default=PlanType.FIXED.value)
    # Dodo product id for fixed plans; tiered plans resolve it per tier
    billing_price_id = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    memberships = relationship("Membership", back_populates="plan")


class Customer(Base):
    __tablename__ = "customers"

    # Application user id (Firebase uid), one row per user
    id = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)  # E.164
    service_address = Column(String(500), nullable=False)
    city = Column(String(255), nullable=False)
    state = Column(String(50), nullable=False)
    zip_code = Column(String(20), nullable=False)
    # Dodo customer linkage - set once, never reassigned
    billing_customer_id = Column(String(255), nullable=True, unique=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    memberships = relationship("Membership", back_populates="customer")
    services = relationship("ServiceCompleted", back_populates="customer")


class MembershipAgreement(Base):
    """Terms the customer accepts at checkout; the newest active version applies"""

    __tablename__ = "membership_agreements"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    version = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    effective_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, server_default=func.now())


class Membership(Base):
    __tablename__ = "customer_memberships"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(128), ForeignKey("customers.id"), nullable=False, index=True)
    plan_id = Column(String(36), ForeignKey("maintenance_plans.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=MembershipStatus.ACTIVE.value)
    tune_ups_remaining = Column(Integer, nullable=False, default=0)
    billing_subscription_id = Column(String(255), nullable=True)
    mini_split_heads = Column(Integer, nullable=True)
    agreement_signed_at = Column(DateTime, nullable=False)
    agreement_version = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="memberships")
    plan = relationship("Plan", back_populates="memberships")
    services = relationship("ServiceCompleted", back_populates="membership")


class ServiceCompleted(Base):
    __tablename__ = "services_completed"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(128), ForeignKey("customers.id"), nullable=False, index=True)
    membership_id = Column(String(36), ForeignKey("customer_memberships.id"), nullable=True)
    service_date = Column(Date, nullable=False)
    service_type = Column(String(50), nullable=False)  # tune_up, repair, inspection
    technician_name = Column(String(255), nullable=True)
    summary = Column(Text, nullable=True)
    work_completed = Column(JSON, default=list, nullable=True)  # [{task, completed, notes}]
    recommendations = Column(JSON, default=list, nullable=True)  # [{title, priority, ...}]
    created_at = Column(DateTime, server_default=func.now())

    customer = relationship("Customer", back_populates="services")
    membership = relationship("Membership", back_populates="services")
