"""
Feature Access Service — evaluates feature entitlements for a user.

Provides:
- has_feature_access(user_id, feature, context) → AccessDecision
- check_usage_limits(user_id) → UsageLimitReport
- get_user_available_features(user_id) → FeatureBreakdown
- get_upgrade_recommendations(user_id) → UpgradeRecommendation

Architecture:
- Stateless: one instance per request, collaborators injected
- Evaluation order: account linking → tier → usage cap → grant
- No subscription → free tier (the normal case, not an error)
- Lookup failures propagate to the caller; this service never defaults
  to a permissive or restrictive state on infrastructure failure
"""

import logging
from typing import List, Mapping, Optional, Tuple, Union

from vangarments.entitlements import catalog
from vangarments.entitlements.interfaces import SubscriptionLookup, UsageSnapshotProvider
from vangarments.entitlements.models import (
    AccessContext,
    AccessDecision,
    BlockedFeature,
    FeatureBreakdown,
    FeatureCategory,
    FeatureDefinition,
    FeatureKey,
    RestrictedFeature,
    SubscriptionRecord,
    Tier,
    UpgradeRecommendation,
    UsageLimitReport,
    UsageSnapshot,
    UsageWarning,
)

logger = logging.getLogger(__name__)

ACCOUNT_LINKING_REASON = (
    "Feature requires account linking (connect a social account with bio links)"
)

# Estimated monthly value (BRL) a feature brings, for upgrade recommendations.
_FEATURE_VALUE = {
    FeatureKey.MARKETPLACE_TRADING: 15,
    FeatureKey.ADVANCED_ANALYTICS: 10,
    FeatureKey.UNLIMITED_CATALOGING: 8,
    FeatureKey.ENHANCED_SOCIAL_FEATURES: 12,
    FeatureKey.PROFESSIONAL_TOOLS: 25,
}
_DEFAULT_FEATURE_VALUE = 5
_MAX_ESTIMATED_VALUE = 100


def tier_for_subscription(subscription: Optional[SubscriptionRecord]) -> Tier:
    """Tier a subscription grants. Absent or inactive subscriptions are free."""
    if subscription is None or not subscription.is_active:
        return Tier.FREE
    return subscription.subscription_type


def meets_tier_requirement(
    feature: FeatureDefinition,
    tier: Tier,
    subscription: Optional[SubscriptionRecord] = None,
) -> bool:
    """
    Tier gate for a feature.

    Override-controlled features are also granted when the active
    subscription sets the feature's flag.
    """
    if tier.rank >= feature.tier.rank:
        return True
    if feature.override_flag and subscription is not None and subscription.is_active:
        return subscription.features.is_enabled(feature.override_flag)
    return False


class FeatureAccessService:
    """
    Feature access evaluator.

    Usage:
        service = FeatureAccessService(subscription_repo, usage_repo)
        decision = service.has_feature_access(user_id, FeatureKey.MARKETPLACE_TRADING)
        if not decision.has_access:
            ...
    """

    def __init__(
        self,
        subscriptions: SubscriptionLookup,
        usage: UsageSnapshotProvider,
    ):
        self._subscriptions = subscriptions
        self._usage = usage

    # ------------------------------------------------------------------
    # Tier resolution
    # ------------------------------------------------------------------

    def get_active_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        return self._subscriptions.get_user_active_subscription(user_id)

    def resolve_tier(self, user_id: str) -> Tier:
        return tier_for_subscription(self.get_active_subscription(user_id))

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    def has_feature_access(
        self,
        user_id: str,
        feature: Union[FeatureKey, str],
        context: Optional[AccessContext] = None,
    ) -> AccessDecision:
        """
        Decide whether a user may use a feature.

        Args:
            user_id: Opaque user identifier
            feature: FeatureKey (or its string value)
            context: Optional usage count / account-linking state

        Returns:
            AccessDecision. Denials carry a reason, and an upgrade tier when
            the denial is tier- or usage-gated.

        Raises:
            ValueError: If feature is not a catalog key.
        """
        _, decision = self.evaluate_access(user_id, feature, context)
        return decision

    def evaluate_access(
        self,
        user_id: str,
        feature: Union[FeatureKey, str],
        context: Optional[AccessContext] = None,
    ) -> Tuple[Tier, AccessDecision]:
        """
        has_feature_access() plus the tier the decision was made on.

        The subscription is looked up once, so callers reporting a denial
        get the same tier the evaluator used.
        """
        definition = catalog.get_feature(feature)
        context = context or AccessContext()

        subscription = self.get_active_subscription(user_id)
        tier = tier_for_subscription(subscription)

        decision = self._evaluate(definition, tier, subscription, context)

        if not decision.has_access:
            logger.info("Feature access denied", extra={
                "user_id": user_id,
                "feature": definition.key.value,
                "tier": tier.value,
                "reason": decision.reason,
                "upgrade_required": (
                    decision.upgrade_required.value if decision.upgrade_required else None
                ),
            })
        return tier, decision

    def check_usage_limits(self, user_id: str) -> UsageLimitReport:
        """
        Report usage-limited features that are near or at their cap.

        Premium and enterprise users have no caps; their usage is not read.
        """
        tier = self.resolve_tier(user_id)
        if tier.is_unlimited():
            return UsageLimitReport()

        usage = self.get_user_feature_usage(user_id)

        warnings: List[UsageWarning] = []
        blocked: List[BlockedFeature] = []

        for feature in catalog.get_limited_features():
            limit = feature.usage_limit
            current = usage.get(limit.usage_field)
            percentage = limit.percentage(current)

            if percentage >= 100:
                blocked.append(BlockedFeature(
                    feature=feature.key.value,
                    current=current,
                    limit=limit.cap,
                    message=limit.blocked_message,
                ))
            elif percentage >= limit.warning_threshold_pct:
                warnings.append(UsageWarning(
                    feature=feature.key.value,
                    current=current,
                    limit=limit.cap,
                    percentage=percentage,
                    message=limit.warning_message.format(percentage=round(percentage)),
                ))

        if blocked:
            logger.info("Usage limits reached", extra={
                "user_id": user_id,
                "blocked": [b.feature for b in blocked],
            })

        return UsageLimitReport(warnings=warnings, blocked=blocked)

    def get_user_available_features(
        self,
        user_id: str,
        include_restricted: bool = True,
    ) -> FeatureBreakdown:
        """
        Partition the catalog by tier gate.

        Usage caps and account linking do not move a feature into
        restricted; exhausted caps are reported by check_usage_limits().
        """
        subscription = self.get_active_subscription(user_id)
        tier = tier_for_subscription(subscription)

        available: List[FeatureDefinition] = []
        restricted: List[RestrictedFeature] = []

        for feature in catalog.get_all_features().values():
            if meets_tier_requirement(feature, tier, subscription):
                available.append(feature)
            elif include_restricted:
                restricted.append(RestrictedFeature(
                    feature=feature,
                    reason=self._tier_reason(feature),
                    upgrade_required=feature.tier,
                ))

        return FeatureBreakdown(tier=tier, available=available, restricted=restricted)

    def get_user_feature_usage(self, user_id: str) -> UsageSnapshot:
        return self._usage.get_user_feature_usage(user_id)

    def get_upgrade_recommendations(self, user_id: str) -> UpgradeRecommendation:
        """Recommend a tier and the features that justify it, from usage patterns."""
        current_tier = self.resolve_tier(user_id)
        usage = self.get_user_feature_usage(user_id)

        recommended_tier = Tier.PREMIUM
        reasons: List[str] = []
        features: List[FeatureDefinition] = []

        if usage.wardrobe_items > 80:
            reasons.append("You're approaching the free tier limit of 100 wardrobe items")
            features.append(catalog.FEATURES[FeatureKey.UNLIMITED_CATALOGING])

        if usage.social_follows > 40:
            reasons.append("Unlock enhanced social features for better engagement")
            features.append(catalog.FEATURES[FeatureKey.ENHANCED_SOCIAL_FEATURES])

        if usage.monthly_uploads > 15:
            reasons.append("Get advanced analytics to understand your fashion patterns")
            features.append(catalog.FEATURES[FeatureKey.ADVANCED_ANALYTICS])
            features.append(catalog.FEATURES[FeatureKey.STYLE_DNA_ANALYSIS])

        if current_tier == Tier.FREE:
            reasons.append("Start monetizing your wardrobe with marketplace trading")
            features.append(catalog.FEATURES[FeatureKey.MARKETPLACE_TRADING])

        if usage.marketplace_listings > 20 or usage.social_follows > 500:
            recommended_tier = Tier.ENTERPRISE
            reasons.append("Professional tools can help you scale your fashion business")
            features.append(catalog.FEATURES[FeatureKey.PROFESSIONAL_TOOLS])
            features.append(catalog.FEATURES[FeatureKey.BRAND_MANAGEMENT])

        unique = list(dict.fromkeys(features))

        return UpgradeRecommendation(
            current_tier=current_tier,
            recommended_tier=recommended_tier,
            reasons=reasons,
            features=unique,
            estimated_value=self._estimate_value(unique),
        )

    # ------------------------------------------------------------------
    # Catalog pass-throughs
    # ------------------------------------------------------------------

    @staticmethod
    def get_all_features() -> Mapping[FeatureKey, FeatureDefinition]:
        return catalog.get_all_features()

    @staticmethod
    def get_features_by_category(category: Union[FeatureCategory, str]) -> List[FeatureDefinition]:
        return catalog.get_features_by_category(category)

    @staticmethod
    def get_features_by_tier(tier: Union[Tier, str]) -> List[FeatureDefinition]:
        return catalog.get_features_by_tier(tier)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _evaluate(
        self,
        feature: FeatureDefinition,
        tier: Tier,
        subscription: Optional[SubscriptionRecord],
        context: AccessContext,
    ) -> AccessDecision:
        if feature.requires_account_linking and not context.has_account_linking:
            return AccessDecision.denied(ACCOUNT_LINKING_REASON)

        if not meets_tier_requirement(feature, tier, subscription):
            return AccessDecision.denied(
                self._tier_reason(feature),
                upgrade_required=feature.tier,
            )

        limit = feature.usage_limit
        if (
            limit is not None
            and not tier.is_unlimited()
            and context.current_usage is not None
            and limit.is_exhausted(context.current_usage)
        ):
            return AccessDecision.denied(
                f"Usage limit reached: {limit.denial_message()}",
                upgrade_required=Tier.PREMIUM,
            )

        return AccessDecision.granted()

    @staticmethod
    def _tier_reason(feature: FeatureDefinition) -> str:
        return f"{feature.name} requires {feature.tier.value} subscription"

    @staticmethod
    def _estimate_value(features: List[FeatureDefinition]) -> int:
        value = sum(_FEATURE_VALUE.get(f.key, _DEFAULT_FEATURE_VALUE) for f in features)
        return min(value, _MAX_ESTIMATED_VALUE)
