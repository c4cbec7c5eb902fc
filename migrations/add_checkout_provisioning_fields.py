"""
Add checkout provisioning fields

- maintenance_plans: plan_type (fixed | mini_split), billing_price_id
  * plan_type is backfilled from the legacy "mini split" name marker
- customers: billing_customer_id with a unique index (one Dodo customer per user)
- customer_memberships: billing_subscription_id, mini_split_heads, agreement_version
- membership_agreements: versioned terms accepted at checkout
"""

import argparse

from sqlalchemy import text

from hvac_storefront.database import engine
from hvac_storefront.domain.billing.pricing import is_tiered_plan_name
from hvac_storefront.models import PlanType

UPGRADE_STATEMENTS = [
    "ALTER TABLE maintenance_plans ADD COLUMN IF NOT EXISTS plan_type VARCHAR(20)",
    "ALTER TABLE maintenance_plans ADD COLUMN IF NOT EXISTS billing_price_id VARCHAR(255)",
    "ALTER TABLE customers ADD COLUMN IF NOT EXISTS billing_customer_id VARCHAR(255)",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_customers_billing_customer_id
    ON customers (billing_customer_id)
    WHERE billing_customer_id IS NOT NULL
    """,
    "ALTER TABLE customer_memberships ADD COLUMN IF NOT EXISTS billing_subscription_id VARCHAR(255)",
    "ALTER TABLE customer_memberships ADD COLUMN IF NOT EXISTS mini_split_heads INTEGER",
    "ALTER TABLE customer_memberships ADD COLUMN IF NOT EXISTS agreement_version VARCHAR(50)",
    """
    CREATE TABLE IF NOT EXISTS membership_agreements (
        id VARCHAR(36) PRIMARY KEY,
        version VARCHAR(50) NOT NULL,
        content TEXT NOT NULL,
        effective_date DATE NOT NULL,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMP DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_membership_agreements_is_active ON membership_agreements (is_active)",
]

DOWNGRADE_STATEMENTS = [
    "DROP TABLE IF EXISTS membership_agreements",
    "ALTER TABLE customer_memberships DROP COLUMN IF EXISTS agreement_version",
    "ALTER TABLE customer_memberships DROP COLUMN IF EXISTS mini_split_heads",
    "ALTER TABLE customer_memberships DROP COLUMN IF EXISTS billing_subscription_id",
    "DROP INDEX IF EXISTS uq_customers_billing_customer_id",
    "ALTER TABLE customers DROP COLUMN IF EXISTS billing_customer_id",
    "ALTER TABLE maintenance_plans DROP COLUMN IF EXISTS billing_price_id",
    "ALTER TABLE maintenance_plans DROP COLUMN IF EXISTS plan_type",
]


def backfill_plan_types(conn) -> int:
    """Set plan_type on rows created before the column existed"""
    rows = conn.execute(
        text("SELECT id, name FROM maintenance_plans WHERE plan_type IS NULL")
    ).fetchall()
    for plan_id, name in rows:
        plan_type = PlanType.MINI_SPLIT if is_tiered_plan_name(name) else PlanType.FIXED
        conn.execute(
            text("UPDATE maintenance_plans SET plan_type = :plan_type WHERE id = :id"),
            {"plan_type": plan_type.value, "id": plan_id},
        )
    return len(rows)


def upgrade():
    with engine.connect() as conn:
        for statement in UPGRADE_STATEMENTS:
            conn.execute(text(statement))
        updated = backfill_plan_types(conn)
        conn.execute(
            text("ALTER TABLE maintenance_plans ALTER COLUMN plan_type SET NOT NULL")
        )
        conn.commit()
        print(f"Migration add_checkout_provisioning_fields applied ({updated} plans backfilled)")


def downgrade():
    with engine.connect() as conn:
        for statement in DOWNGRADE_STATEMENTS:
            conn.execute(text(statement))
        conn.commit()
        print("Migration add_checkout_provisioning_fields rolled back")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Manage checkout provisioning migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        downgrade()
    else:
        upgrade()
