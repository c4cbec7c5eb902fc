"""
Membership lifecycle.

A membership starts ``active`` when a checkout is fulfilled and ends either
``expired`` (term end reached) or ``cancelled``; both are terminal. A new
checkout always creates a fresh membership rather than reviving an old one.
The tune-up counter starts at the plan's yearly allotment and only goes down
when a tune-up visit is recorded.
"""

import logging
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from ...errors import MembershipStateError, ValidationError
from ...models import Membership, MembershipStatus, Plan
from ..billing.checkout_service import (
    META_AGREEMENT_SIGNED_AT,
    META_AGREEMENT_VERSION,
    META_CUSTOMER_ID,
    META_PLAN_ID,
    META_TIER_DIMENSION,
)

logger = logging.getLogger(__name__)

TERM_MONTHS = {"annual": 12, "semi_annual": 6}

ALLOWED_TRANSITIONS = {
    MembershipStatus.ACTIVE: {MembershipStatus.EXPIRED, MembershipStatus.CANCELLED},
    MembershipStatus.EXPIRED: set(),
    MembershipStatus.CANCELLED: set(),
}


def term_end(plan: Plan, started_on: date) -> date:
    months = TERM_MONTHS.get(plan.billing_frequency or "annual")
    if months is None:
        raise ValidationError(f"Unknown billing frequency '{plan.billing_frequency}'")
    return started_on + relativedelta(months=months)


def _parse_signed_at(value: Optional[str]) -> datetime:
    try:
        signed_at = datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {META_AGREEMENT_SIGNED_AT} in checkout metadata") from e
    if signed_at.tzinfo is not None:
        signed_at = signed_at.astimezone(timezone.utc).replace(tzinfo=None)
    return signed_at


def build_membership_from_checkout(
    metadata: dict,
    plan: Plan,
    started_on: date,
    billing_subscription_id: Optional[str] = None,
) -> Membership:
    """
    Build the membership a fulfilled checkout grants, from the session metadata.

    Raises:
        ValidationError: metadata is incomplete or names a different plan
    """
    required = (META_PLAN_ID, META_CUSTOMER_ID, META_AGREEMENT_SIGNED_AT)
    missing = [key for key in required if not metadata.get(key)]
    if missing:
        raise ValidationError(f"Checkout metadata missing {', '.join(missing)}")
    if metadata[META_PLAN_ID] != str(plan.id):
        raise ValidationError(f"Checkout metadata is for plan {metadata[META_PLAN_ID]}, not {plan.id}")

    heads = metadata.get(META_TIER_DIMENSION)
    return Membership(
        customer_id=metadata[META_CUSTOMER_ID],
        plan_id=plan.id,
        start_date=started_on,
        end_date=term_end(plan, started_on),
        status=MembershipStatus.ACTIVE.value,
        tune_ups_remaining=plan.tune_ups_per_year or 0,
        billing_subscription_id=billing_subscription_id,
        mini_split_heads=int(heads) if heads else None,
        agreement_signed_at=_parse_signed_at(metadata[META_AGREEMENT_SIGNED_AT]),
        agreement_version=metadata.get(META_AGREEMENT_VERSION),
    )


def transition(membership: Membership, new_status: MembershipStatus) -> Membership:
    current = MembershipStatus(membership.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise MembershipStateError(
            f"Membership cannot move from {current.value} to {new_status.value}"
        )
    membership.status = new_status.value
    logger.info(f"Membership {membership.id}: {current.value} -> {new_status.value}")
    return membership


def cancel_membership(membership: Membership) -> Membership:
    return transition(membership, MembershipStatus.CANCELLED)


def expire_if_due(membership: Membership, today: date) -> bool:
    """Expire an active membership whose term ended before ``today``"""
    if membership.status != MembershipStatus.ACTIVE.value or membership.end_date >= today:
        return False
    transition(membership, MembershipStatus.EXPIRED)
    return True


def record_tune_up(membership: Membership) -> Membership:
    """Use one tune-up from an active membership"""
    if membership.status != MembershipStatus.ACTIVE.value:
        raise MembershipStateError("Tune-ups can only be recorded against an active membership")
    if (membership.tune_ups_remaining or 0) <= 0:
        raise MembershipStateError("No tune-ups remaining on this membership")
    membership.tune_ups_remaining -= 1
    return membership


def select_active_membership(memberships: Iterable[Membership]) -> Optional[Membership]:
    """
    The membership the dashboard treats as current.

    Fulfillment should never leave two active rows for a customer; if it does,
    the most recently created one wins.
    """
    active = [m for m in memberships if m.status == MembershipStatus.ACTIVE.value]
    if not active:
        return None
    if len(active) > 1:
        logger.warning(
            f"⚠️ Customer {active[0].customer_id} has {len(active)} active memberships"
        )
    return max(active, key=lambda m: m.created_at or datetime.min)
