"""
Pricing tier resolution.

Maps a plan (and, for tiered plans, a head count) to the Dodo product id and
amount to bill. Fixed plans carry their product id on the plan row; tiered
plans look it up in the pricing table loaded from ``pricing_tiers.json``.
Lookups are exact: an unpopulated head count is a user error, never a
fallback to a neighbouring tier.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

from ...config import BILLING_PRICE_ID_PREFIX, PRICING_TIERS_PATH
from ...errors import ConfigurationError, ValidationError
from ...models import Plan, PlanType

logger = logging.getLogger(__name__)

# Legacy marker: before plan_type existed, tiered plans were recognised by name
TIERED_NAME_MARKER = "mini split"


def is_tiered_plan_name(name: Optional[str]) -> bool:
    """Legacy name heuristic, used only to backfill plan_type on old rows"""
    return TIERED_NAME_MARKER in (name or "").lower()


@dataclass(frozen=True)
class PricingTier:
    dimension: int
    amount: Decimal
    price_id: str


@dataclass(frozen=True)
class TierSet:
    """Populated tiers for one plan type, keyed by dimension"""

    label: str
    tiers: dict

    @property
    def lowest(self) -> int:
        return min(self.tiers)

    @property
    def highest(self) -> int:
        return max(self.tiers)


@dataclass(frozen=True)
class ResolvedPrice:
    price_id: str
    amount: Decimal
    dimension: Optional[int] = None

    @property
    def is_tiered(self) -> bool:
        return self.dimension is not None


class PricingTable:
    """Tier prices keyed by plan type and dimension"""

    def __init__(self, tier_sets: dict):
        self._tier_sets = tier_sets

    @classmethod
    def from_dict(cls, raw: dict) -> "PricingTable":
        """
        Build a table from its JSON form::

            {"mini_split": {"label": "mini split heads",
                            "tiers": [{"heads": 4, "amount": "340.00", "price_id": "pdt_..."}]}}

        Raises:
            ConfigurationError: duplicate or non-integer dimensions, bad amounts
        """
        if not isinstance(raw, dict):
            raise ConfigurationError("Pricing table must be a JSON object")

        tier_sets = {}
        for plan_type, entry in raw.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("tiers"), list):
                raise ConfigurationError(f"Pricing table entry for '{plan_type}' needs a tiers list")

            tiers = {}
            for item in entry["tiers"]:
                heads = item.get("heads")
                if isinstance(heads, bool) or not isinstance(heads, int) or heads < 1:
                    raise ConfigurationError(f"Invalid tier dimension {heads!r} for '{plan_type}'")
                if heads in tiers:
                    raise ConfigurationError(f"Duplicate tier dimension {heads} for '{plan_type}'")
                try:
                    amount = Decimal(str(item.get("amount")))
                except InvalidOperation as e:
                    raise ConfigurationError(
                        f"Invalid amount for '{plan_type}' tier {heads}"
                    ) from e
                if amount <= 0:
                    raise ConfigurationError(f"Amount must be positive for '{plan_type}' tier {heads}")
                tiers[heads] = PricingTier(
                    dimension=heads, amount=amount, price_id=str(item.get("price_id") or "")
                )

            if not tiers:
                raise ConfigurationError(f"Pricing table entry for '{plan_type}' has no tiers")
            tier_sets[plan_type] = TierSet(label=entry.get("label", "tier"), tiers=tiers)

        return cls(tier_sets)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "PricingTable":
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not load pricing table from {path}: {e}") from e

        table = cls.from_dict(raw)
        logger.info(f"📊 Loaded pricing table from {path}: {sorted(table._tier_sets)}")
        return table

    def tier_set(self, plan_type: str) -> Optional[TierSet]:
        return self._tier_sets.get(plan_type)


@lru_cache(maxsize=1)
def load_pricing_table() -> PricingTable:
    """Pricing table from PRICING_TIERS_PATH, loaded once per process"""
    return PricingTable.from_file(PRICING_TIERS_PATH)


def coerce_dimension(value: Any) -> Optional[int]:
    """Integer dimension from request input, or None when it is not an integer"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class PricingTierResolver:
    """Resolves plans to a billable Dodo product id and amount"""

    def __init__(self, pricing_table: PricingTable, price_id_prefix: str = BILLING_PRICE_ID_PREFIX):
        self.pricing_table = pricing_table
        self.price_id_prefix = price_id_prefix

    def is_well_formed(self, price_id: Optional[str]) -> bool:
        return bool(price_id) and price_id.startswith(self.price_id_prefix)

    def resolve(self, plan: Plan, dimension: Any = None) -> ResolvedPrice:
        """
        Resolve the price for a plan.

        Args:
            plan: The plan being purchased
            dimension: Head count for tiered plans; ignored for fixed plans

        Raises:
            ValidationError: tiered plan with a missing or unpopulated dimension
            ConfigurationError: no usable product id configured
        """
        try:
            plan_type = PlanType(plan.plan_type)
        except ValueError as e:
            raise ConfigurationError(
                f"Plan {plan.id} has unknown plan_type '{plan.plan_type}'"
            ) from e

        if plan_type is PlanType.FIXED:
            return self._resolve_fixed(plan)
        return self._resolve_tiered(plan, plan_type, dimension)

    def _resolve_fixed(self, plan: Plan) -> ResolvedPrice:
        if not self.is_well_formed(plan.billing_price_id):
            raise ConfigurationError(
                f"Plan {plan.id} ({plan.name}) is missing a valid billing_price_id"
            )
        return ResolvedPrice(price_id=plan.billing_price_id, amount=Decimal(str(plan.price)))

    def _resolve_tiered(self, plan: Plan, plan_type: PlanType, dimension: Any) -> ResolvedPrice:
        tier_set = self.pricing_table.tier_set(plan_type.value)
        if tier_set is None:
            raise ConfigurationError(f"No pricing tiers configured for plan type '{plan_type.value}'")

        heads = coerce_dimension(dimension)
        tier = tier_set.tiers.get(heads) if heads is not None else None
        if tier is None:
            raise ValidationError(
                f"Select a valid number of {tier_set.label} "
                f"({tier_set.lowest}-{tier_set.highest})."
            )

        if not self.is_well_formed(tier.price_id):
            raise ConfigurationError(
                f"No valid billing price configured for {plan_type.value} tier {heads}"
            )

        return ResolvedPrice(price_id=tier.price_id, amount=tier.amount, dimension=heads)
