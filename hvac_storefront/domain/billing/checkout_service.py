"""Checkout service - turns a checkout intent into a hosted Dodo checkout"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import FirebaseIdentityVerifier
from ...config import BILLING_DEFAULT_COUNTRY, CHECKOUT_SUCCESS_PATH, FRONTEND_URL
from ...errors import NotFoundError, SessionCreationError
from ...models import Plan
from .dodo_service import BillingProviderError, DodoPaymentsService
from .pricing import PricingTierResolver, ResolvedPrice
from .provisioning import ContactDetails, CustomerProvisioningService, ServiceAddress
from .repository import BillingRepository
from .schemas import CheckoutRequest

logger = logging.getLogger(__name__)

# Metadata keys read back by fulfillment to build the membership row
META_PLAN_ID = "plan_id"
META_PLAN_NAME = "plan_name"
META_PLAN_TYPE = "plan_type"
META_CUSTOMER_ID = "customer_id"
META_AGREEMENT_SIGNED_AT = "agreement_signed_at"
META_AGREEMENT_VERSION = "agreement_version"
META_TIER_DIMENSION = "mini_split_heads"
META_TIER_AMOUNT = "mini_split_amount"


@dataclass(frozen=True)
class CheckoutResult:
    url: str
    session_id: str
    metadata: dict = field(default_factory=dict)


def normalize_agreement_time(signed_at: Optional[datetime]) -> datetime:
    """Agreement acceptance time in UTC; now when the client omitted it"""
    if signed_at is None:
        return datetime.now(timezone.utc)
    if signed_at.tzinfo is None:
        return signed_at.replace(tzinfo=timezone.utc)
    return signed_at.astimezone(timezone.utc)


def build_checkout_metadata(
    plan: Plan,
    customer_id: str,
    price: ResolvedPrice,
    agreement_signed_at: datetime,
    agreement_version: Optional[str] = None,
) -> dict:
    """Flat string metadata carried on the checkout session and the subscription"""
    metadata = {
        META_PLAN_ID: str(plan.id),
        META_PLAN_NAME: str(plan.name),
        META_PLAN_TYPE: str(plan.plan_type),
        META_CUSTOMER_ID: customer_id,
        META_AGREEMENT_SIGNED_AT: agreement_signed_at.isoformat(),
    }
    if agreement_version:
        metadata[META_AGREEMENT_VERSION] = agreement_version
    if price.is_tiered:
        metadata[META_TIER_DIMENSION] = str(price.dimension)
        metadata[META_TIER_AMOUNT] = f"{price.amount:.2f}"
    return metadata


class CheckoutService:
    """
    Single-pass checkout:
    authenticate -> load plan -> resolve price -> provision customer -> create session.

    Any step's failure aborts the request; nothing is retried here.
    """

    def __init__(
        self,
        db: Session,
        identity_verifier: FirebaseIdentityVerifier,
        resolver: PricingTierResolver,
        billing_provider: DodoPaymentsService,
        provisioning: Optional[CustomerProvisioningService] = None,
    ):
        self.db = db
        self.repo = BillingRepository()
        self.identity_verifier = identity_verifier
        self.resolver = resolver
        self.billing_provider = billing_provider
        self.provisioning = provisioning or CustomerProvisioningService(db, billing_provider)

    async def start_checkout(self, auth_token: Optional[str], request: CheckoutRequest) -> CheckoutResult:
        """Create a subscription checkout session and return its hosted URL"""
        caller = self.identity_verifier.verify(auth_token)

        plan = self.repo.get_active_plan(self.db, request.planId)
        if not plan:
            logger.warning(f"⚠️ Checkout for missing or inactive plan {request.planId} by {caller.user_id}")
            raise NotFoundError("Plan not found or no longer available.")

        price = self.resolver.resolve(plan, request.miniSplitHeads)
        agreement = self.repo.get_active_agreement(self.db)
        agreement_version = agreement.version if agreement else None

        contact = ContactDetails(
            full_name=request.fullName, email=request.email, phone=request.phone
        )
        address = ServiceAddress(
            street=request.serviceAddress,
            city=request.city,
            state=request.state,
            zip_code=request.zipCode,
        )
        # Always the token subject; the request body never names the customer
        billing_customer_id = await self.provisioning.provision(caller.user_id, contact, address)

        metadata = build_checkout_metadata(
            plan,
            caller.user_id,
            price,
            normalize_agreement_time(request.agreementSignedAt),
            agreement_version,
        )

        try:
            session = await self.billing_provider.create_subscription_checkout(
                product_id=price.price_id,
                customer_id=billing_customer_id,
                billing_address=address.to_billing_address(BILLING_DEFAULT_COUNTRY),
                return_url=f"{FRONTEND_URL}{CHECKOUT_SUCCESS_PATH}",
                metadata=metadata,
                subscription_metadata=dict(metadata),
            )
        except BillingProviderError as e:
            raise SessionCreationError("Could not start checkout", details=str(e)) from e

        logger.info(
            f"✅ Created checkout session {session.session_id} for user {caller.user_id} "
            f"(plan {plan.id}, price {price.price_id})"
        )
        return CheckoutResult(url=session.url, session_id=session.session_id, metadata=metadata)
