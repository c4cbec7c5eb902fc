"""
Shared fixtures: in-memory SQLite, a fake identity verifier and a mocked
Dodo Payments service. Nothing here talks to Firebase or Dodo.
"""

import os

# Settings are read at import time, so pin them before the package loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["DODO_PAYMENTS_API_KEY"] = ""
os.environ["FRONTEND_URL"] = "https://cramerservices.github.io/storefront"
os.environ["ALLOWED_ORIGINS"] = "https://cramerservices.github.io,http://localhost:5173"

from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hvac_storefront import models  # noqa: E402,F401
from hvac_storefront.auth import CallerIdentity, NOT_AUTHENTICATED_MESSAGE  # noqa: E402
from hvac_storefront.database import Base  # noqa: E402
from hvac_storefront.domain.billing.dodo_service import (  # noqa: E402
    CheckoutSession,
    DodoPaymentsService,
)
from hvac_storefront.domain.billing.pricing import (  # noqa: E402
    PricingTierResolver,
    load_pricing_table,
)
from hvac_storefront.errors import AuthenticationError  # noqa: E402
from hvac_storefront.models import Plan, PlanType  # noqa: E402

VALID_TOKEN = "header.payload.signature"
USER_ID = "firebase-uid-123"
USER_EMAIL = "pat@example.com"
CHECKOUT_URL = "https://test.checkout.dodopayments.com/session/cks_001"


class FakeIdentityVerifier:
    """Accepts VALID_TOKEN only and counts calls"""

    def __init__(self, user_id: str = USER_ID):
        self.user_id = user_id
        self.calls = 0

    def verify(self, token):
        self.calls += 1
        if not token:
            raise AuthenticationError(NOT_AUTHENTICATED_MESSAGE)
        if token != VALID_TOKEN:
            raise AuthenticationError("Invalid authentication token.")
        return CallerIdentity(user_id=self.user_id, email=USER_EMAIL)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gold_plan(db):
    plan = Plan(
        id="plan-gold",
        name="Gold Maintenance Plan",
        price=Decimal("299.00"),
        billing_frequency="annual",
        tune_ups_per_year=2,
        priority_service=True,
        discount_percentage=15,
        features=["Two tune-ups per year", "Priority scheduling"],
        plan_type=PlanType.FIXED.value,
        billing_price_id="pdt_gold",
        is_active=True,
    )
    db.add(plan)
    db.commit()
    return plan


@pytest.fixture
def mini_split_plan(db):
    plan = Plan(
        id="plan-mini-split",
        name="Mini Split Maintenance Plan",
        price=Decimal("340.00"),
        billing_frequency="annual",
        tune_ups_per_year=2,
        plan_type=PlanType.MINI_SPLIT.value,
        billing_price_id=None,
        is_active=True,
    )
    db.add(plan)
    db.commit()
    return plan


@pytest.fixture
def retired_plan(db):
    plan = Plan(
        id="plan-retired",
        name="Legacy Silver Plan",
        price=Decimal("199.00"),
        billing_frequency="semi_annual",
        tune_ups_per_year=1,
        plan_type=PlanType.FIXED.value,
        billing_price_id="pdt_silver",
        is_active=False,
    )
    db.add(plan)
    db.commit()
    return plan


@pytest.fixture
def resolver():
    return PricingTierResolver(load_pricing_table())


@pytest.fixture
def verifier():
    return FakeIdentityVerifier()


@pytest.fixture
def billing_provider():
    """Dodo service double; both calls succeed unless a test says otherwise"""
    provider = MagicMock(spec=DodoPaymentsService)
    provider.create_customer = AsyncMock(return_value="cus_dodo_001")
    provider.create_subscription_checkout = AsyncMock(
        return_value=CheckoutSession(session_id="cks_001", url=CHECKOUT_URL)
    )
    return provider


@pytest.fixture
def valid_token():
    return VALID_TOKEN


@pytest.fixture
def checkout_payload():
    """Factory for a valid storefront checkout body (gold plan by default)"""

    def build(**overrides) -> dict:
        payload = {
            "planId": "plan-gold",
            "fullName": "Pat Jones",
            "email": "Pat@Example.com",
            "phone": "(555) 123-4567",
            "serviceAddress": "12 Elm Street",
            "city": "Springfield",
            "state": "il",
            "zipCode": "62704",
            "agreementSignedAt": "2026-03-01T14:00:00Z",
        }
        payload.update(overrides)
        return payload

    return build
