"""Dodo Payments client wrapper"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from hvac_storefront.domain.billing.dodo_service import (
    BillingProviderError,
    CheckoutSession,
    DodoPaymentsService,
    normalize_dodo_environment,
)


@pytest.fixture
def client():
    client = MagicMock()
    client.customers.create = AsyncMock(return_value=SimpleNamespace(customer_id="cus_001"))
    client.checkout_sessions.create = AsyncMock(
        return_value=SimpleNamespace(session_id="cks_001", checkout_url="https://checkout.example/cks_001")
    )
    return client


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, "test_mode"),
        ("live", "live_mode"),
        ("Production", "live_mode"),
        ("sandbox", "test_mode"),
        ("live_mode", "live_mode"),
        ("mars", "test_mode"),
    ],
)
def test_normalize_environment(value, expected):
    assert normalize_dodo_environment(value) == expected


@pytest.mark.asyncio
async def test_unconfigured_service_fails_cleanly():
    service = DodoPaymentsService(api_key="")

    assert not service.is_available()
    with pytest.raises(BillingProviderError):
        await service.create_customer(email="pat@example.com", name="Pat")


@pytest.mark.asyncio
async def test_create_customer(client):
    service = DodoPaymentsService(client=client)

    customer_id = await service.create_customer(
        email="pat@example.com", name="Pat Jones", phone_number="+15551234567", metadata={"customer_id": "uid-1"}
    )

    assert customer_id == "cus_001"
    client.customers.create.assert_awaited_once_with(
        email="pat@example.com",
        name="Pat Jones",
        phone_number="+15551234567",
        extra_body={"metadata": {"customer_id": "uid-1"}},
    )


@pytest.mark.asyncio
async def test_create_subscription_checkout(client):
    service = DodoPaymentsService(client=client)
    address = {"country": "US", "state": "IL", "city": "Springfield", "street": "12 Elm Street", "zipcode": "62704"}

    session = await service.create_subscription_checkout(
        product_id="pdt_gold",
        customer_id="cus_001",
        billing_address=address,
        return_url="https://storefront.example/#/success",
        metadata={"plan_id": "plan-gold"},
        subscription_metadata={"plan_id": "plan-gold"},
    )

    assert session == CheckoutSession(session_id="cks_001", url="https://checkout.example/cks_001")
    client.checkout_sessions.create.assert_awaited_once_with(
        product_cart=[{"product_id": "pdt_gold", "quantity": 1}],
        customer={"customer_id": "cus_001"},
        billing_address=address,
        return_url="https://storefront.example/#/success",
        metadata={"plan_id": "plan-gold"},
        subscription_data={"metadata": {"plan_id": "plan-gold"}},
    )


@pytest.mark.asyncio
async def test_sdk_errors_are_wrapped(client):
    client.checkout_sessions.create.side_effect = RuntimeError("422 product archived")
    service = DodoPaymentsService(client=client)

    with pytest.raises(BillingProviderError, match="product archived"):
        await service.create_subscription_checkout(
            product_id="pdt_gold",
            customer_id="cus_001",
            billing_address={},
            return_url="https://storefront.example/",
            metadata={},
            subscription_metadata={},
        )
