"""Customer provisioning - one Dodo customer per application user"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import BILLING_DEFAULT_COUNTRY
from ...errors import ProvisioningError
from ...models import Customer
from .dodo_service import BillingProviderError, DodoPaymentsService
from .repository import BillingRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactDetails:
    full_name: str
    email: str
    phone: str


@dataclass(frozen=True)
class ServiceAddress:
    street: str
    city: str
    state: str
    zip_code: str

    def to_billing_address(self, country: str = BILLING_DEFAULT_COUNTRY) -> dict:
        """Address in the shape Dodo expects"""
        return {
            "country": country,
            "state": self.state,
            "city": self.city,
            "street": self.street,
            "zipcode": self.zip_code,
        }


class CustomerProvisioningService:
    """
    Ensures a Customer row exists for the user and is linked to exactly one
    Dodo customer.

    The row is held FOR UPDATE from the upsert until the link is committed, so
    two concurrent checkouts by the same user serialize on it; the unique index
    on billing_customer_id backs this up at the database level. Session calls
    run in a worker thread, so a request waiting on the lock blocks a thread,
    never the event loop.
    """

    def __init__(self, db: Session, billing_provider: DodoPaymentsService):
        self.db = db
        self.repo = BillingRepository()
        self.billing_provider = billing_provider

    async def provision(self, user_id: str, contact: ContactDetails, address: ServiceAddress) -> str:
        """Upsert the customer and return its Dodo customer id, creating it once"""
        try:
            customer = await asyncio.to_thread(self._upsert_locked, user_id, contact, address)
            linked_id = customer.billing_customer_id
            if linked_id:
                await asyncio.to_thread(self.db.commit)
        except SQLAlchemyError as e:
            await asyncio.to_thread(self.db.rollback)
            logger.error(f"❌ Failed to save customer {user_id}: {e}")
            raise ProvisioningError("Could not save customer details", details=str(e)) from e

        if linked_id:
            logger.debug(f"Customer {user_id} already linked to {linked_id}")
            return linked_id

        try:
            billing_customer_id = await self.billing_provider.create_customer(
                email=contact.email,
                name=contact.full_name,
                phone_number=contact.phone,
                metadata={
                    "customer_id": user_id,
                    "service_address": address.street,
                    "service_city": address.city,
                    "service_state": address.state,
                    "service_zip": address.zip_code,
                },
            )
        except BillingProviderError as e:
            await asyncio.to_thread(self.db.rollback)
            raise ProvisioningError("Could not create billing customer", details=str(e)) from e

        try:
            await asyncio.to_thread(self._link, customer, billing_customer_id)
        except (SQLAlchemyError, ValueError) as e:
            await asyncio.to_thread(self.db.rollback)
            # The Dodo customer exists but is not linked; needs manual reconciliation
            logger.error(
                f"❌ Dodo customer {billing_customer_id} created for {user_id} but not saved: {e}"
            )
            raise ProvisioningError("Could not link billing customer", details=str(e)) from e

        logger.info(f"✅ Provisioned Dodo customer {billing_customer_id} for user {user_id}")
        return billing_customer_id

    def _link(self, customer: Customer, billing_customer_id: str) -> None:
        self.repo.set_billing_customer_id(self.db, customer, billing_customer_id)
        self.db.commit()

    def _upsert_locked(self, user_id: str, contact: ContactDetails, address: ServiceAddress) -> Customer:
        fields = {
            "email": contact.email,
            "full_name": contact.full_name,
            "phone": contact.phone,
            "service_address": address.street,
            "city": address.city,
            "state": address.state,
            "zip_code": address.zip_code,
        }

        customer = self.repo.lock_customer(self.db, user_id)
        if customer is not None:
            return self.repo.update_customer_contact(self.db, customer, **fields)

        try:
            return self.repo.create_customer(self.db, user_id, **fields)
        except IntegrityError:
            # A concurrent first checkout inserted the row; wait for its lock and re-read
            self.db.rollback()
            logger.info(f"🔄 Customer {user_id} inserted concurrently, re-reading under lock")
            customer = self.repo.lock_customer(self.db, user_id)
            if customer is None:
                raise
            return self.repo.update_customer_contact(self.db, customer, **fields)
