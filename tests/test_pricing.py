"""
Pricing tier resolution.

Tiered plans price by head count from pricing_tiers.json; fixed plans carry
their own Dodo product id.
"""

from decimal import Decimal

import pytest

from hvac_storefront.config import PRICING_TIERS_PATH
from hvac_storefront.domain.billing.pricing import (
    PricingTable,
    PricingTierResolver,
    coerce_dimension,
    is_tiered_plan_name,
    load_pricing_table,
)
from hvac_storefront.errors import ConfigurationError, ValidationError
from hvac_storefront.models import Plan, PlanType

MINI_SPLIT_MESSAGE = "Select a valid number of mini split heads (4-9)."


def make_plan(**overrides) -> Plan:
    fields = {
        "id": "plan-gold",
        "name": "Gold Maintenance Plan",
        "price": Decimal("299.00"),
        "plan_type": PlanType.FIXED.value,
        "billing_price_id": "pdt_gold",
    }
    fields.update(overrides)
    return Plan(**fields)


def make_mini_split_plan() -> Plan:
    return make_plan(
        id="plan-mini-split",
        name="Mini Split Maintenance Plan",
        price=Decimal("340.00"),
        plan_type=PlanType.MINI_SPLIT.value,
        billing_price_id=None,
    )


@pytest.mark.parametrize(
    "heads,amount",
    [(4, "340.00"), (5, "400.00"), (6, "450.00"), (7, "475.00"), (8, "500.00"), (9, "525.00")],
)
def test_every_populated_tier_resolves_to_its_amount_and_product(resolver, heads, amount):
    price = resolver.resolve(make_mini_split_plan(), heads)

    assert price.amount == Decimal(amount)
    assert price.price_id == f"pdt_mini_split_{heads}_heads"
    assert price.dimension == heads
    assert price.is_tiered


@pytest.mark.parametrize("heads", [None, 0, 1, 3, 10, 12, -5, True, 4.5, "abc", "5.0", ""])
def test_unpopulated_or_malformed_head_count_is_rejected(resolver, heads):
    with pytest.raises(ValidationError) as exc_info:
        resolver.resolve(make_mini_split_plan(), heads)

    assert exc_info.value.message == MINI_SPLIT_MESSAGE
    assert exc_info.value.status_code == 400


def test_integral_string_head_count_is_accepted(resolver):
    price = resolver.resolve(make_mini_split_plan(), " 5 ")

    assert price.amount == Decimal("400.00")
    assert price.dimension == 5


def test_fixed_plan_ignores_extraneous_dimension(resolver):
    plan = make_plan()

    without = resolver.resolve(plan)
    with_heads = resolver.resolve(plan, 12)

    assert without == with_heads
    assert without.price_id == "pdt_gold"
    assert without.amount == Decimal("299.00")
    assert not without.is_tiered


@pytest.mark.parametrize("price_id", [None, "", "price_1Nabc", "gold"])
def test_fixed_plan_without_valid_product_is_configuration_error(resolver, price_id):
    with pytest.raises(ConfigurationError):
        resolver.resolve(make_plan(billing_price_id=price_id))


def test_unknown_plan_type_is_configuration_error(resolver):
    with pytest.raises(ConfigurationError):
        resolver.resolve(make_plan(plan_type="per_ton"))


def test_tiered_plan_without_tier_table_is_configuration_error():
    resolver = PricingTierResolver(PricingTable({}))

    with pytest.raises(ConfigurationError):
        resolver.resolve(make_mini_split_plan(), 5)


def test_tier_with_malformed_product_is_configuration_error():
    table = PricingTable.from_dict(
        {"mini_split": {"label": "mini split heads", "tiers": [
            {"heads": 4, "amount": "340.00", "price_id": "pdt_mini_split_4_heads"},
            {"heads": 5, "amount": "400.00", "price_id": "price_legacy_5"},
        ]}}
    )
    resolver = PricingTierResolver(table)

    assert resolver.resolve(make_mini_split_plan(), 4).price_id == "pdt_mini_split_4_heads"
    with pytest.raises(ConfigurationError):
        resolver.resolve(make_mini_split_plan(), 5)


def test_custom_prefix_is_honoured():
    resolver = PricingTierResolver(PricingTable({}), price_id_prefix="prod_")

    assert resolver.is_well_formed("prod_gold")
    assert not resolver.is_well_formed("pdt_gold")
    assert not resolver.is_well_formed(None)


class TestPricingTableLoading:
    def test_shipped_table_covers_four_to_nine_heads(self):
        tier_set = load_pricing_table().tier_set(PlanType.MINI_SPLIT.value)

        assert tier_set.lowest == 4
        assert tier_set.highest == 9
        assert sorted(tier_set.tiers) == [4, 5, 6, 7, 8, 9]

    def test_from_file_matches_cached_loader(self):
        table = PricingTable.from_file(PRICING_TIERS_PATH)

        assert table.tier_set("mini_split").tiers == load_pricing_table().tier_set("mini_split").tiers

    def test_missing_file_is_configuration_error(self, tmp_path):
        with pytest.raises(ConfigurationError):
            PricingTable.from_file(tmp_path / "missing.json")

    def test_invalid_json_is_configuration_error(self, tmp_path):
        path = tmp_path / "tiers.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            PricingTable.from_file(path)

    @pytest.mark.parametrize(
        "tiers",
        [
            [],
            [{"heads": 4, "amount": "340.00"}, {"heads": 4, "amount": "360.00"}],
            [{"heads": True, "amount": "340.00"}],
            [{"heads": "4", "amount": "340.00"}],
            [{"heads": 0, "amount": "340.00"}],
            [{"heads": 4, "amount": "0"}],
            [{"heads": 4, "amount": "-10.00"}],
            [{"heads": 4, "amount": "three forty"}],
        ],
    )
    def test_malformed_tiers_are_rejected(self, tiers):
        with pytest.raises(ConfigurationError):
            PricingTable.from_dict({"mini_split": {"tiers": tiers}})

    def test_non_object_table_is_rejected(self):
        with pytest.raises(ConfigurationError):
            PricingTable.from_dict([{"heads": 4}])

    def test_unknown_plan_type_has_no_tiers(self):
        assert load_pricing_table().tier_set("ductless_pro") is None


def test_coerce_dimension():
    assert coerce_dimension(7) == 7
    assert coerce_dimension("8") == 8
    assert coerce_dimension(False) is None
    assert coerce_dimension(6.0) is None
    assert coerce_dimension(None) is None


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Mini Split Maintenance Plan", True),
        ("MINI SPLIT care", True),
        ("Gold Maintenance Plan", False),
        ("Minisplit", False),
        (None, False),
    ],
)
def test_legacy_name_marker(name, expected):
    assert is_tiered_plan_name(name) is expected
