"""
Tier-based entitlement system for feature access control.

This module provides:
- Tier catalog: every feature, its minimum tier and usage cap
- FeatureAccessService: access decisions, usage-limit reports, feature breakdowns
- Collaborator interfaces: subscription lookup, usage snapshot, prompt store, pricing
- EntitlementAuditLogger: structured log of denials served over HTTP

Evaluation order: account linking → tier (or override flag) → usage cap → grant
Usage caps apply to the free tier only.
"""

from vangarments.entitlements.models import (
    Tier,
    FeatureCategory,
    FeatureKey,
    FeatureDefinition,
    UsageLimit,
    SubscriptionFeatures,
    SubscriptionRecord,
    SubscriptionStatus,
    BillingCycle,
    UsageSnapshot,
    AccessContext,
    AccessDecision,
    UsageLimitReport,
    FeatureBreakdown,
    UpgradeRecommendation,
    UpgradePrompt,
    FlowStep,
)
from vangarments.entitlements.service import (
    FeatureAccessService,
    tier_for_subscription,
    meets_tier_requirement,
)
from vangarments.entitlements.interfaces import (
    SubscriptionLookup,
    UsageSnapshotProvider,
    UpgradePromptStore,
    PricingProvider,
)
from vangarments.entitlements.errors import (
    EntitlementError,
    FeatureNotFoundError,
    FeatureAccessDeniedError,
)
from vangarments.entitlements.audit import EntitlementAuditLogger, AccessDenialEvent

__all__ = [
    # Models
    "Tier",
    "FeatureCategory",
    "FeatureKey",
    "FeatureDefinition",
    "UsageLimit",
    "SubscriptionFeatures",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "BillingCycle",
    "UsageSnapshot",
    "AccessContext",
    "AccessDecision",
    "UsageLimitReport",
    "FeatureBreakdown",
    "UpgradeRecommendation",
    "UpgradePrompt",
    "FlowStep",
    # Evaluator
    "FeatureAccessService",
    "tier_for_subscription",
    "meets_tier_requirement",
    # Interfaces
    "SubscriptionLookup",
    "UsageSnapshotProvider",
    "UpgradePromptStore",
    "PricingProvider",
    # Errors
    "EntitlementError",
    "FeatureNotFoundError",
    "FeatureAccessDeniedError",
    # Audit
    "EntitlementAuditLogger",
    "AccessDenialEvent",
]
