"""Membership service - Business logic for memberships and service history"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError
from ...models import Membership, ServiceCompleted
from ..billing.checkout_service import META_PLAN_ID
from .lifecycle import (
    build_membership_from_checkout,
    cancel_membership,
    expire_if_due,
    record_tune_up,
    select_active_membership,
)
from .repository import MembershipRepository

logger = logging.getLogger(__name__)

TUNE_UP = "tune_up"


class MembershipService:
    """
    Service layer for membership business logic.

    Only the dashboard read is routed over HTTP. fulfill_checkout is the hook
    the Dodo webhook consumer calls once a subscription is paid, and
    record_service and cancel are called from technician tooling.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = MembershipRepository()

    def get_dashboard(self, customer_id: str, today: Optional[date] = None) -> dict:
        """Current membership and recent services for the dashboard"""
        today = today or date.today()
        customer = self.repo.get_customer(self.db, customer_id)
        memberships = self.repo.list_memberships(self.db, customer_id)

        expired = [m for m in memberships if expire_if_due(m, today)]
        if expired:
            self.db.commit()
            logger.info(f"Expired {len(expired)} membership(s) for customer {customer_id}")

        return {
            "customer_name": customer.full_name if customer else None,
            "membership": select_active_membership(memberships),
            "services": self.repo.recent_services(self.db, customer_id),
        }

    def fulfill_checkout(
        self,
        metadata: dict,
        started_on: date,
        billing_subscription_id: Optional[str] = None,
    ) -> Membership:
        """Create the active membership a paid checkout grants"""
        plan = self.repo.get_plan(self.db, metadata.get(META_PLAN_ID, ""))
        if not plan:
            raise NotFoundError(f"Plan {metadata.get(META_PLAN_ID)} not found")

        membership = build_membership_from_checkout(
            metadata, plan, started_on, billing_subscription_id
        )
        if not self.repo.get_customer(self.db, membership.customer_id):
            raise NotFoundError(f"Customer {membership.customer_id} not found")

        self.repo.add(self.db, membership)
        self.db.commit()
        logger.info(f"✅ Membership {membership.id} created for customer {membership.customer_id}")
        return membership

    def record_service(
        self,
        customer_id: str,
        service_date: date,
        service_type: str,
        membership_id: Optional[str] = None,
        **details,
    ) -> ServiceCompleted:
        """Log a completed service; a tune-up uses one from the membership"""
        membership = None
        if membership_id:
            membership = self.repo.get_membership(self.db, membership_id)
            if not membership or membership.customer_id != customer_id:
                raise NotFoundError("Membership not found")

        if service_type == TUNE_UP:
            if membership is None:
                raise ValidationError("A tune-up must be recorded against a membership")
            record_tune_up(membership)

        service = ServiceCompleted(
            customer_id=customer_id,
            membership_id=membership_id,
            service_date=service_date,
            service_type=service_type,
            **details,
        )
        self.repo.add(self.db, service)
        self.db.commit()
        return service

    def cancel(self, membership_id: str) -> Membership:
        membership = self.repo.get_membership(self.db, membership_id)
        if not membership:
            raise NotFoundError("Membership not found")
        cancel_membership(membership)
        self.db.commit()
        return membership
