"""
Upgrade prompt repository.

Implements UpgradePromptStore. Prompts are inserted once and never updated.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List

from sqlalchemy.orm import Session

from vangarments.entitlements.interfaces import UpgradePromptStore
from vangarments.entitlements.models import (
    NewUpgradePrompt,
    PromptContent,
    PromptType,
    UpgradePrompt,
)
from vangarments.models.upgrade_prompt import UpgradePromptRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UpgradePromptRepository(UpgradePromptStore):
    """Repository for upgrade prompt persistence."""

    def __init__(self, db_session: Session, clock: Callable[[], datetime] = _utcnow):
        self.db = db_session
        self._clock = clock

    def save_upgrade_prompt(self, prompt: NewUpgradePrompt) -> UpgradePrompt:
        """
        Insert a prompt and commit.

        Returns:
            The saved prompt with its assigned id and shown_at.
        """
        row = UpgradePromptRecord(
            user_id=prompt.user_id,
            prompt_type=prompt.prompt_type.value,
            feature_context=prompt.feature_context,
            prompt_content=prompt.prompt_content.to_dict(),
            shown_at=self._clock(),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error("Failed to save upgrade prompt", extra={
                "user_id": prompt.user_id,
                "prompt_type": prompt.prompt_type.value,
            })
            raise

        return self.to_prompt(row)

    def list_for_user(self, user_id: str, limit: int = 50) -> List[UpgradePrompt]:
        """Most recent prompts shown to a user."""
        rows = self.db.query(UpgradePromptRecord).filter(
            UpgradePromptRecord.user_id == user_id
        ).order_by(UpgradePromptRecord.shown_at.desc()).limit(limit).all()
        return [self.to_prompt(row) for row in rows]

    @staticmethod
    def to_prompt(row: UpgradePromptRecord) -> UpgradePrompt:
        return UpgradePrompt(
            id=row.id,
            user_id=row.user_id,
            prompt_type=PromptType(row.prompt_type),
            feature_context=row.feature_context,
            prompt_content=PromptContent.from_dict(row.prompt_content),
            shown_at=row.shown_at,
        )
