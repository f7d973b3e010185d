"""
Premium subscription model.

CRITICAL: At most one active subscription per user. The billing flow owns
writes to this table; the entitlement engine only reads it.
"""

from sqlalchemy import Column, String, Numeric, JSON, Enum, Index

from vangarments.models.base import Base, TimestampMixin, generate_uuid


class PremiumSubscription(Base, TimestampMixin):
    """A user's paid plan, as recorded by checkout."""

    __tablename__ = "premium_subscriptions"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )

    user_id = Column(
        String(255),
        nullable=False,
        index=True,
        comment="Owning user"
    )

    subscription_type = Column(
        Enum(
            "basic", "free", "premium", "enterprise",
            name="subscription_type",
            native_enum=False,
        ),
        nullable=False,
        comment="Plan; 'basic' is the legacy name of the free plan"
    )

    features = Column(
        JSON,
        nullable=False,
        default=dict,
        comment="Per-subscription boolean feature flags"
    )

    status = Column(
        Enum(
            "active", "cancelled", "expired", "suspended",
            name="subscription_status",
            native_enum=False,
        ),
        nullable=False,
        default="active",
        index=True,
    )

    billing_cycle = Column(
        Enum(
            "monthly", "quarterly", "yearly",
            name="billing_cycle",
            native_enum=False,
        ),
        nullable=False,
        default="monthly",
    )

    amount = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="BRL")

    __table_args__ = (
        Index("ix_premium_subscriptions_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<PremiumSubscription(id={self.id}, user_id={self.user_id}, "
            f"type={self.subscription_type}, status={self.status})>"
        )
