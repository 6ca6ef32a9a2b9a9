"""Subscription schema – user, sessions, subscription.

Revision ID: 001_subscription
Revises:
"""

from alembic import op
import sqlalchemy as sa

revision = "001_subscription"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)

    # ── Users ────────────────────────────────────────────
    if not inspector.has_table("user"):
        op.create_table(
            "user",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("email", sa.String(255), nullable=False),
            sa.Column("email_verified", sa.Boolean, default=False),
            sa.Column("image", sa.String(512)),
            sa.Column("role", sa.String(32), server_default="user"),
            sa.Column("created_at", sa.DateTime(timezone=True)),
            sa.Column("updated_at", sa.DateTime(timezone=True)),
            sa.UniqueConstraint("email", name="uq_user_email"),
        )

    # ── Sessions ─────────────────────────────────────────
    if not inspector.has_table("sessions"):
        op.create_table(
            "sessions",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("user_id", sa.String(64), sa.ForeignKey("user.id"), nullable=False),
            sa.Column(
                "status",
                sa.Enum("active", "revoked", "expired", name="sessionstatus"),
                nullable=False,
            ),
            sa.Column("token_hash", sa.String(255), nullable=False),
            sa.Column("ip_address", sa.String(64)),
            sa.Column("user_agent", sa.String(512)),
            sa.Column("created_at", sa.DateTime(timezone=True)),
            sa.Column("expires_at", sa.DateTime(timezone=True)),
            sa.Column("revoked_at", sa.DateTime(timezone=True)),
        )
        op.create_index("ix_sessions_user_id", "sessions", ["user_id"])
        op.create_index("ix_sessions_token_hash", "sessions", ["token_hash"])

    # ── Subscriptions ────────────────────────────────────
    # user_id carries no foreign key: webhooks may name users not yet created.
    if not inspector.has_table("subscription"):
        op.create_table(
            "subscription",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("modified_at", sa.DateTime(timezone=True)),
            sa.Column("amount", sa.Integer, nullable=False),
            sa.Column("currency", sa.String(8), nullable=False),
            sa.Column("recurring_interval", sa.String(16), nullable=False),
            sa.Column("status", sa.String(32), nullable=False),
            sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=False),
            sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=False),
            sa.Column(
                "cancel_at_period_end",
                sa.Boolean,
                nullable=False,
                server_default=sa.false(),
            ),
            sa.Column("canceled_at", sa.DateTime(timezone=True)),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("ends_at", sa.DateTime(timezone=True)),
            sa.Column("ended_at", sa.DateTime(timezone=True)),
            sa.Column("customer_id", sa.String(64), nullable=False),
            sa.Column("product_id", sa.String(64), nullable=False),
            sa.Column("discount_id", sa.String(64)),
            sa.Column("checkout_id", sa.String(64), nullable=False, server_default=""),
            sa.Column("customer_cancellation_reason", sa.String(255)),
            sa.Column("customer_cancellation_comment", sa.Text),
            sa.Column("metadata", sa.Text),
            sa.Column("custom_field_data", sa.Text),
            sa.Column("user_id", sa.String(64)),
        )
        op.create_index("ix_subscription_user_id", "subscription", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_subscription_user_id", table_name="subscription")
    op.drop_table("subscription")

    op.drop_index("ix_sessions_token_hash", table_name="sessions")
    op.drop_index("ix_sessions_user_id", table_name="sessions")
    op.drop_table("sessions")
    sa.Enum(name="sessionstatus").drop(op.get_bind(), checkfirst=True)

    op.drop_table("user")
