"""
create monitored_addresses, email_scans and quarantine_events

Revision ID: initial_schema_20261019
Revises: None
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision = 'initial_schema_20261019'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "monitored_addresses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("owner_id", "address", name="monitored_addresses_owner_address_key"),
        sa.CheckConstraint("status IN ('active','inactive')", name="monitored_addresses_status_check"),
    )
    op.create_index("ix_monitored_addresses_owner_id", "monitored_addresses", ["owner_id"])

    op.create_table(
        "email_scans",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("message_id", sa.Text(), nullable=False, unique=True),
        sa.Column(
            "monitored_address_id",
            sa.Uuid(),
            sa.ForeignKey("monitored_addresses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender", sa.Text(), nullable=False),
        sa.Column("recipient", sa.Text(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False, server_default=""),
        sa.Column("content_preview", sa.Text(), nullable=True),
        sa.Column("scan_result", sa.Text(), nullable=False, server_default="clean"),
        sa.Column("risk_level", sa.Text(), nullable=False, server_default="low"),
        sa.Column("is_quarantined", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("threat_details", JSONB(), nullable=True),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("email_received_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "scan_result IN ('clean','spam','phishing','malware','suspicious')",
            name="email_scans_scan_result_check",
        ),
        sa.CheckConstraint(
            "risk_level IN ('low','medium','high','critical')",
            name="email_scans_risk_level_check",
        ),
    )
    op.create_index("ix_email_scans_monitored_address_id", "email_scans", ["monitored_address_id"])
    op.create_index("ix_email_scans_email_received_at", "email_scans", ["email_received_at"])

    op.create_table(
        "quarantine_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "scan_id",
            sa.Uuid(),
            sa.ForeignKey("email_scans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("actor", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("action IN ('quarantined','released')", name="quarantine_events_action_check"),
    )
    op.create_index("ix_quarantine_events_scan_id", "quarantine_events", ["scan_id"])


def downgrade() -> None:
    op.drop_table("quarantine_events")
    op.drop_table("email_scans")
    op.drop_table("monitored_addresses")
