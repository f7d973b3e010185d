"""
Database models for subscriptions and upgrade prompts.

Importing this package registers every table on Base.metadata.
"""

from vangarments.models.base import TimestampMixin, generate_uuid
from vangarments.models.subscription import PremiumSubscription
from vangarments.models.upgrade_prompt import UpgradePromptRecord

__all__ = [
    "TimestampMixin",
    "generate_uuid",
    "PremiumSubscription",
    "UpgradePromptRecord",
]
