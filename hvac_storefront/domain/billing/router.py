"""Billing router - FastAPI endpoints for checkout"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import FirebaseIdentityVerifier, get_bearer_token, get_identity_verifier
from ...database import get_db
from .checkout_service import CheckoutService
from .dodo_service import DodoPaymentsService, get_billing_provider
from .pricing import PricingTierResolver, load_pricing_table
from .schemas import CheckoutRequest, CheckoutResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


def get_pricing_resolver() -> PricingTierResolver:
    """Dependency injection for the tier resolver"""
    return PricingTierResolver(load_pricing_table())


def get_checkout_service(
    db: Session = Depends(get_db),
    verifier: FirebaseIdentityVerifier = Depends(get_identity_verifier),
    resolver: PricingTierResolver = Depends(get_pricing_resolver),
    billing_provider: DodoPaymentsService = Depends(get_billing_provider),
) -> CheckoutService:
    """Dependency injection for CheckoutService"""
    return CheckoutService(db, verifier, resolver, billing_provider)


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    token: str = Depends(get_bearer_token),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Create a subscription checkout session and return the hosted checkout URL"""
    result = await service.start_checkout(token, body)
    return {"url": result.url}
