"""Membership repository - Database operations for memberships and service history"""

from typing import Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload

from ...models import Customer, Membership, Plan, ServiceCompleted


class MembershipRepository:
    """Repository for membership database operations"""

    @staticmethod
    def get_customer(db: Session, customer_id: str) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.id == customer_id).first()

    @staticmethod
    def get_plan(db: Session, plan_id: str) -> Optional[Plan]:
        return db.query(Plan).filter(Plan.id == plan_id).first()

    @staticmethod
    def get_membership(db: Session, membership_id: str) -> Optional[Membership]:
        return db.query(Membership).filter(Membership.id == membership_id).first()

    @staticmethod
    def list_memberships(db: Session, customer_id: str) -> list[Membership]:
        """All memberships for a customer, newest first, with their plans"""
        return (
            db.query(Membership)
            .options(joinedload(Membership.plan))
            .filter(Membership.customer_id == customer_id)
            .order_by(desc(Membership.created_at))
            .all()
        )

    @staticmethod
    def recent_services(db: Session, customer_id: str, limit: int = 10) -> list[ServiceCompleted]:
        return (
            db.query(ServiceCompleted)
            .filter(ServiceCompleted.customer_id == customer_id)
            .order_by(desc(ServiceCompleted.service_date))
            .limit(limit)
            .all()
        )

    @staticmethod
    def add(db: Session, obj):
        db.add(obj)
        db.flush()
        return obj
