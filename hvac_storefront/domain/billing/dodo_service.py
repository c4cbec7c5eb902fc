"""Dodo Payments service - Integration with Dodo Payments API"""

import logging
from dataclasses import dataclass
from typing import Optional

from dodopayments import AsyncDodoPayments  # type: ignore

from ...config import DODO_PAYMENTS_API_KEY, DODO_PAYMENTS_ENVIRONMENT

logger = logging.getLogger(__name__)


class BillingProviderError(Exception):
    """Dodo Payments call failed or the client is not configured"""


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


def normalize_dodo_environment(env: Optional[str]) -> str:
    """Normalize Dodo environment value to expected format"""
    value = (env or "test_mode").strip().lower()
    if value in {"live", "production", "prod"}:
        return "live_mode"
    if value in {"test", "sandbox", "staging", "dev", "development"}:
        return "test_mode"
    if value in {"test_mode", "live_mode"}:
        return value
    logger.warning(f"Unknown DODO environment '{env}', defaulting to test_mode")
    return "test_mode"


class DodoPaymentsService:
    """Service for Dodo Payments API operations"""

    def __init__(self, api_key: Optional[str] = None, environment: Optional[str] = None, client=None):
        self.api_key = api_key if api_key is not None else DODO_PAYMENTS_API_KEY
        self.environment = normalize_dodo_environment(environment or DODO_PAYMENTS_ENVIRONMENT)
        self.client = client

        if self.client is not None:
            return
        if not self.api_key:
            logger.warning(
                "DODO_PAYMENTS_API_KEY not set; checkout endpoints will fail until configured"
            )
        else:
            try:
                self.client = AsyncDodoPayments(
                    bearer_token=self.api_key,
                    environment=self.environment,
                )
                logger.info(f"Dodo Payments client initialized (env={self.environment})")
            except Exception as e:
                logger.error(f"Failed to initialize Dodo client (env={self.environment}): {e}")
                self.client = None

    def is_available(self) -> bool:
        """Check if Dodo Payments client is available"""
        return self.client is not None

    def _require_client(self):
        if not self.client:
            raise BillingProviderError("Dodo Payments client not initialized")
        return self.client

    async def create_customer(
        self,
        email: str,
        name: str,
        phone_number: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> str:
        """Create a Dodo customer and return its id"""
        client = self._require_client()

        try:
            response = await client.customers.create(
                email=email,
                name=name,
                phone_number=phone_number,
                extra_body={"metadata": metadata or {}},
            )
        except Exception as e:
            logger.error(f"Failed to create Dodo customer for {email}: {e}")
            raise BillingProviderError(f"Customer creation failed: {e}") from e

        return response.customer_id

    async def create_subscription_checkout(
        self,
        product_id: str,
        customer_id: str,
        billing_address: dict,
        return_url: str,
        metadata: dict,
        subscription_metadata: dict,
    ) -> CheckoutSession:
        """
        Create a hosted checkout session for a recurring subscription product.

        Args:
            product_id: Dodo subscription product id (one line item, quantity 1)
            customer_id: Existing Dodo customer the subscription is bound to
            billing_address: country, state, city, street, zipcode
            return_url: Where Dodo sends the customer after checkout
            metadata: Attached to the checkout session
            subscription_metadata: Attached to the subscription the session creates
        """
        client = self._require_client()

        try:
            response = await client.checkout_sessions.create(
                product_cart=[{"product_id": product_id, "quantity": 1}],
                customer={"customer_id": customer_id},
                billing_address=billing_address,
                return_url=return_url,
                metadata=metadata,
                subscription_data={"metadata": subscription_metadata},
            )
        except Exception as e:
            logger.error(f"Failed to create checkout session for customer {customer_id}: {e}")
            raise BillingProviderError(f"Checkout session creation failed: {e}") from e

        return CheckoutSession(session_id=response.session_id, url=response.checkout_url)


# Singleton instance
dodo_service = DodoPaymentsService()


def get_billing_provider() -> DodoPaymentsService:
    """Dependency injection for the Dodo Payments service"""
    return dodo_service
