"""
Collaborator interfaces injected into the entitlement services.

Implementations live in vangarments.repositories (database-backed) and
vangarments.config (pricing). Errors raised by implementations propagate
unchanged through the services; retries and timeouts are their concern.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from vangarments.entitlements.models import (
    NewUpgradePrompt,
    SubscriptionRecord,
    Tier,
    TierPricing,
    UpgradePrompt,
    UsageSnapshot,
)


class SubscriptionLookup(ABC):
    """Resolves a user's active subscription."""

    @abstractmethod
    def get_user_active_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        """Return the active subscription, or None when the user has none."""


class UsageSnapshotProvider(ABC):
    """Supplies a user's current usage counters."""

    @abstractmethod
    def get_user_feature_usage(self, user_id: str) -> UsageSnapshot:
        pass


class UpgradePromptStore(ABC):
    """Persists upgrade prompts for analytics and dedup."""

    @abstractmethod
    def save_upgrade_prompt(self, prompt: NewUpgradePrompt) -> UpgradePrompt:
        """Persist the prompt, assigning id and shown_at."""


class PricingProvider(ABC):
    """Supplies the subscription pricing table."""

    @abstractmethod
    def get_subscription_pricing(self) -> Mapping[Tier, TierPricing]:
        pass
