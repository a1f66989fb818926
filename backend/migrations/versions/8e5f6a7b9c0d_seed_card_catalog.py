"""Seed built-in card catalog, reward rules and merchant exclusions

Revision ID: 8e5f6a7b9c0d
Revises: 4c1d2e3f5a6b
Create Date: 2026-03-02 09:30:00.000000

"""
from datetime import datetime
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from cardpilot.cards import CARD_CATALOG
from cardpilot.registry import REGISTRY_VERIFIED_AT


# revision identifiers, used by Alembic.
revision: str = "8e5f6a7b9c0d"
down_revision: Union[str, None] = "4c1d2e3f5a6b"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


cards_table = sa.table(
    "cards",
    sa.column("id", sa.String),
    sa.column("issuer", sa.String),
    sa.column("name", sa.String),
    sa.column("network", sa.String),
    sa.column("annual_fee_cents", sa.Integer),
    sa.column("foreign_tx_fee_percent", sa.Float),
    sa.column("verified", sa.Boolean),
    sa.column("last_verified_at", sa.DateTime),
    sa.column("created_date", sa.DateTime),
)

rules_table = sa.table(
    "card_reward_rules",
    sa.column("card_id", sa.String),
    sa.column("category", sa.String),
    sa.column("multiplier", sa.Float),
    sa.column("cap_amount_cents", sa.Integer),
    sa.column("cap_period", sa.String),
    sa.column("conditions", sa.Text),
    sa.column("exclusions", sa.JSON),
    sa.column("priority", sa.Integer),
)

exclusions_table = sa.table(
    "merchant_exclusions",
    sa.column("card_id", sa.String),
    sa.column("merchant_pattern", sa.String),
    sa.column("reason", sa.String),
)


def upgrade() -> None:
    # Deterministic seed data for shared dev DBs.
    verified_at = datetime.fromisoformat(REGISTRY_VERIFIED_AT)
    op.bulk_insert(
        cards_table,
        [
            {
                "id": card.id,
                "issuer": card.issuer,
                "name": card.name,
                "network": card.network,
                "annual_fee_cents": card.annual_fee_cents,
                "foreign_tx_fee_percent": card.foreign_tx_fee_percent,
                "verified": True,
                "last_verified_at": verified_at,
                "created_date": verified_at,
            }
            for card in CARD_CATALOG
        ],
    )
    op.bulk_insert(
        rules_table,
        [
            {
                "card_id": card.id,
                "category": rule.category.value,
                "multiplier": rule.multiplier,
                "cap_amount_cents": rule.cap_amount_cents,
                "cap_period": rule.cap_period.value if rule.cap_period else None,
                "conditions": rule.conditions,
                "exclusions": list(rule.exclusions),
                "priority": rule.priority,
            }
            for card in CARD_CATALOG
            for rule in card.reward_rules
        ],
    )
    exclusions = [
        {"card_id": card.id, "merchant_pattern": e.merchant_pattern, "reason": e.reason}
        for card in CARD_CATALOG
        for e in card.exclusions
    ]
    if exclusions:
        op.bulk_insert(exclusions_table, exclusions)


def downgrade() -> None:
    ids = ", ".join(f"'{card.id}'" for card in CARD_CATALOG)
    op.execute(f"DELETE FROM merchant_exclusions WHERE card_id IN ({ids})")
    op.execute(f"DELETE FROM card_reward_rules WHERE card_id IN ({ids})")
    op.execute(f"DELETE FROM cards WHERE id IN ({ids})")
