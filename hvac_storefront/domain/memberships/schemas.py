"""Membership domain schemas - Pydantic models for the dashboard feed"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class PlanSummary(BaseModel):
    id: str
    name: str
    price: Decimal
    billing_frequency: str
    tune_ups_per_year: int
    discount_percentage: int
    priority_service: bool

    class Config:
        from_attributes = True


class MembershipResponse(BaseModel):
    id: str
    plan_id: str
    status: str
    start_date: date
    end_date: date
    tune_ups_remaining: int
    mini_split_heads: Optional[int] = None
    agreement_signed_at: datetime
    agreement_version: Optional[str] = None
    plan: Optional[PlanSummary] = None

    class Config:
        from_attributes = True


class ServiceRecordResponse(BaseModel):
    id: str
    membership_id: Optional[str] = None
    service_date: date
    service_type: str
    technician_name: Optional[str] = None
    summary: Optional[str] = None
    work_completed: Optional[list] = None
    recommendations: Optional[list] = None

    class Config:
        from_attributes = True


class DashboardResponse(BaseModel):
    """What the storefront dashboard shows for the signed-in customer"""

    customer_name: Optional[str] = None
    membership: Optional[MembershipResponse] = None
    services: list[ServiceRecordResponse]
