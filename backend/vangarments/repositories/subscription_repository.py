"""
Subscription repository for data access operations.

Implements SubscriptionLookup over the premium_subscriptions table and
converts rows into SubscriptionRecord values for the entitlement engine.
"""

import logging
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.orm import Session

from vangarments.entitlements.interfaces import SubscriptionLookup
from vangarments.entitlements.models import (
    BillingCycle,
    SubscriptionFeatures,
    SubscriptionRecord,
    SubscriptionStatus,
    Tier,
)
from vangarments.models.subscription import PremiumSubscription

logger = logging.getLogger(__name__)


class SubscriptionRepository(SubscriptionLookup):
    """
    Repository for subscription data access.

    Read-only from the entitlement engine's point of view.
    """

    def __init__(self, db_session: Session):
        """
        Initialize repository with database session.

        Args:
            db_session: SQLAlchemy database session
        """
        self.db = db_session

    def get_by_id(self, subscription_id: str) -> Optional[PremiumSubscription]:
        return self.db.query(PremiumSubscription).filter(
            PremiumSubscription.id == subscription_id
        ).first()

    def get_all_for_user(self, user_id: str) -> List[PremiumSubscription]:
        """All subscriptions for a user, newest first."""
        return self.db.query(PremiumSubscription).filter(
            PremiumSubscription.user_id == user_id
        ).order_by(PremiumSubscription.created_at.desc()).all()

    def get_user_active_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        """
        Get the active subscription for a user.

        If more than one row is active, the newest wins and a warning is logged.

        Returns:
            SubscriptionRecord if found, None otherwise
        """
        rows = self.db.query(PremiumSubscription).filter(
            PremiumSubscription.user_id == user_id,
            PremiumSubscription.status == SubscriptionStatus.ACTIVE.value,
        ).order_by(PremiumSubscription.created_at.desc()).limit(2).all()

        if not rows:
            return None

        if len(rows) > 1:
            logger.warning(
                "Multiple active subscriptions for user",
                extra={"user_id": user_id, "subscription_id": rows[0].id},
            )

        return self.to_record(rows[0])

    @staticmethod
    def to_record(row: PremiumSubscription) -> SubscriptionRecord:
        """Convert a database row into the engine's SubscriptionRecord."""
        return SubscriptionRecord(
            id=row.id,
            user_id=row.user_id,
            subscription_type=Tier.from_subscription_type(row.subscription_type),
            features=SubscriptionFeatures.from_dict(row.features),
            status=SubscriptionStatus(row.status),
            billing_cycle=BillingCycle(row.billing_cycle),
            amount=Decimal(str(row.amount)) if row.amount is not None else Decimal("0"),
            currency=row.currency,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
