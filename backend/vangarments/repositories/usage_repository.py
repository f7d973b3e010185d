"""
Usage repository: counts a user's activity for usage-limit checks.

Implements UsageSnapshotProvider. The counted tables belong to the
wardrobe, social and marketplace modules; this repository only reads them,
so it issues plain SQL rather than mapping them.
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import text
from sqlalchemy.orm import Session

from vangarments.entitlements.interfaces import UsageSnapshotProvider
from vangarments.entitlements.models import UsageSnapshot

logger = logging.getLogger(__name__)

_WARDROBE_ITEMS_SQL = text(
    "SELECT COUNT(*) FROM vufs_catalog WHERE created_by = :user_id"
)
_OUTFITS_SQL = text(
    "SELECT COUNT(*) FROM outfits WHERE user_id = :user_id"
)
_SOCIAL_FOLLOWS_SQL = text(
    "SELECT COUNT(*) FROM user_follows WHERE follower_id = :user_id"
)
_MARKETPLACE_LISTINGS_SQL = text(
    "SELECT COUNT(*) FROM marketplace_listings "
    "WHERE seller_id = :user_id AND status = 'active'"
)
_MONTHLY_UPLOADS_SQL = text(
    "SELECT COUNT(*) FROM vufs_catalog "
    "WHERE created_by = :user_id AND created_at >= :month_start"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class UsageRepository(UsageSnapshotProvider):
    """Computes a fresh UsageSnapshot on every call. Nothing is cached."""

    def __init__(self, db_session: Session, clock: Callable[[], datetime] = _utcnow):
        self.db = db_session
        self._clock = clock

    def get_user_feature_usage(self, user_id: str) -> UsageSnapshot:
        params = {"user_id": user_id}
        month_start = start_of_month(self._clock())

        snapshot = UsageSnapshot(
            wardrobe_items=self._count(_WARDROBE_ITEMS_SQL, params),
            outfits=self._count(_OUTFITS_SQL, params),
            social_follows=self._count(_SOCIAL_FOLLOWS_SQL, params),
            marketplace_listings=self._count(_MARKETPLACE_LISTINGS_SQL, params),
            monthly_uploads=self._count(
                _MONTHLY_UPLOADS_SQL, {**params, "month_start": month_start}
            ),
        )

        logger.debug("Computed usage snapshot", extra={
            "user_id": user_id,
            **snapshot.to_dict(),
        })
        return snapshot

    def _count(self, statement, params: dict) -> int:
        return int(self.db.execute(statement, params).scalar() or 0)
