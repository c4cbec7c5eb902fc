"""Billing repository - Database operations for checkout"""

from typing import Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ...models import Customer, MembershipAgreement, Plan


class BillingRepository:
    """Repository for checkout database operations"""

    @staticmethod
    def get_active_plan(db: Session, plan_id: str) -> Optional[Plan]:
        """Get a purchasable plan by ID"""
        return db.query(Plan).filter(Plan.id == plan_id, Plan.is_active.is_(True)).first()

    @staticmethod
    def get_active_agreement(db: Session) -> Optional[MembershipAgreement]:
        """Newest active membership agreement"""
        return (
            db.query(MembershipAgreement)
            .filter(MembershipAgreement.is_active.is_(True))
            .order_by(desc(MembershipAgreement.created_at))
            .first()
        )

    @staticmethod
    def get_customer(db: Session, user_id: str) -> Optional[Customer]:
        """Get customer by application user ID"""
        return db.query(Customer).filter(Customer.id == user_id).first()

    @staticmethod
    def lock_customer(db: Session, user_id: str) -> Optional[Customer]:
        """Get customer row locked FOR UPDATE until the transaction ends"""
        return (
            db.query(Customer)
            .filter(Customer.id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def create_customer(db: Session, user_id: str, **fields) -> Customer:
        """Insert a customer row and flush so key conflicts surface immediately"""
        customer = Customer(id=user_id, **fields)
        db.add(customer)
        db.flush()
        return customer

    @staticmethod
    def update_customer_contact(db: Session, customer: Customer, **fields) -> Customer:
        """Overwrite contact and address fields"""
        for key, value in fields.items():
            setattr(customer, key, value)
        db.flush()
        return customer

    @staticmethod
    def set_billing_customer_id(db: Session, customer: Customer, billing_customer_id: str) -> Customer:
        """Link the Dodo customer; an existing link is never replaced"""
        if customer.billing_customer_id and customer.billing_customer_id != billing_customer_id:
            raise ValueError(
                f"Customer {customer.id} is already linked to {customer.billing_customer_id}"
            )
        customer.billing_customer_id = billing_customer_id
        db.flush()
        return customer
