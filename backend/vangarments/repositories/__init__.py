"""Repository layer implementing the entitlement engine's collaborator interfaces."""

from vangarments.db_base import Base
from vangarments.repositories.subscription_repository import SubscriptionRepository
from vangarments.repositories.usage_repository import UsageRepository
from vangarments.repositories.upgrade_prompt_repository import UpgradePromptRepository

__all__ = [
    "Base",
    "SubscriptionRepository",
    "UsageRepository",
    "UpgradePromptRepository",
]
