"""
Upgrade System Service — builds upgrade prompts and upgrade flows.

Provides:
- trigger_upgrade_prompt(): usage-limit prompt, persisted
- show_feature_discovery_prompt(): feature discovery prompt, persisted
- generate_upgrade_flow(): the five-step upgrade plan for the UI to render
- get_personalized_recommendations(): urgency, message and savings estimate
- get_available_discount(): current discount offer, if any

The flow is described, never executed. Payment capture and subscription
changes belong to the billing flow.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Union

from vangarments.config.upgrade_settings import (
    UpgradeSettingsLoader,
    get_upgrade_settings_loader,
)
from vangarments.entitlements import catalog
from vangarments.entitlements.errors import FeatureNotFoundError
from vangarments.entitlements.interfaces import (
    PricingProvider,
    SubscriptionLookup,
    UpgradePromptStore,
)
from vangarments.entitlements.models import (
    BillingCycle,
    Discount,
    FeatureDefinition,
    FlowStep,
    FlowStepName,
    NewUpgradePrompt,
    PersonalizedRecommendation,
    PromptContent,
    PromptType,
    Tier,
    TierPricing,
    UpgradePrompt,
    UrgencyLevel,
    UsageSnapshot,
)
from vangarments.entitlements.service import FeatureAccessService, tier_for_subscription

logger = logging.getLogger(__name__)

UPGRADE_CTA = "Upgrade Now"

HIGH_URGENCY_PCT = 90
MEDIUM_URGENCY_PCT = 70

# Marketplace savings estimate: share of the wardrobe a user could sell,
# capped, times an average item value, net of fees.
_SELLABLE_SHARE = Decimal("0.1")
_MAX_SELLABLE_ITEMS = Decimal("10")
_AVERAGE_ITEM_VALUE = Decimal("50")
_NET_AFTER_FEES = Decimal("0.8")

_CENTS = Decimal("0.01")
_CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.YEARLY: 12,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def prompt_urgency(percentage: float) -> Optional[UrgencyLevel]:
    """High at 90% of the limit and above, medium from 70%, otherwise none."""
    if percentage >= HIGH_URGENCY_PCT:
        return UrgencyLevel.HIGH
    if percentage >= MEDIUM_URGENCY_PCT:
        return UrgencyLevel.MEDIUM
    return None


class UpgradeSystemService:
    """
    Upgrade flow generator.

    Usage:
        service = UpgradeSystemService(
            subscriptions=subscription_repo,
            feature_access=FeatureAccessService(subscription_repo, usage_repo),
            prompt_store=prompt_repo,
            pricing=get_upgrade_settings_loader(),
        )
        steps = service.generate_upgrade_flow(user_id, Tier.PREMIUM, "marketplace_trading")
    """

    def __init__(
        self,
        subscriptions: SubscriptionLookup,
        feature_access: FeatureAccessService,
        prompt_store: UpgradePromptStore,
        pricing: Optional[PricingProvider] = None,
        settings: Optional[UpgradeSettingsLoader] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._subscriptions = subscriptions
        self._feature_access = feature_access
        self._prompt_store = prompt_store
        self._settings = settings or get_upgrade_settings_loader()
        self._pricing = pricing or self._settings
        self._clock = clock

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def trigger_upgrade_prompt(
        self,
        user_id: str,
        feature_name: str,
        current_usage: int,
        limit: int,
        action: str,
    ) -> UpgradePrompt:
        """
        Build and persist a usage-limit prompt.

        Raises:
            FeatureNotFoundError: feature_name is not in the catalog
            ValueError: limit is not positive or current_usage is negative
        """
        feature = self._find_feature(feature_name)
        if limit <= 0:
            raise ValueError("limit must be > 0")
        if current_usage < 0:
            raise ValueError("current_usage must be >= 0")

        percentage = current_usage * 100 / limit
        shown_percentage = int(
            (Decimal(current_usage) * 100 / Decimal(limit)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        )

        content = PromptContent(
            title=f"You've reached your {feature.name} limit",
            message=(
                f"You're using {shown_percentage}% of your {feature.key.value} allowance. "
                f"Upgrade to continue {action}."
            ),
            benefits=catalog.get_feature_benefits(feature.key),
            cta_text=UPGRADE_CTA,
            urgency=prompt_urgency(percentage),
        )

        prompt = self._prompt_store.save_upgrade_prompt(NewUpgradePrompt(
            user_id=user_id,
            prompt_type=PromptType.USAGE_LIMIT,
            feature_context=feature.key.value,
            prompt_content=content,
        ))

        logger.info("Upgrade prompt shown", extra={
            "user_id": user_id,
            "prompt_id": prompt.id,
            "prompt_type": PromptType.USAGE_LIMIT.value,
            "feature": feature.key.value,
            "percentage": shown_percentage,
        })
        return prompt

    def show_feature_discovery_prompt(self, user_id: str, feature_name: str) -> UpgradePrompt:
        """
        Build and persist a feature discovery prompt.

        Raises:
            FeatureNotFoundError: feature_name is not in the catalog
        """
        feature = self._find_feature(feature_name)

        content = PromptContent(
            title=f"Unlock {feature.name}",
            message=f"Discover the power of {feature.description}",
            benefits=catalog.get_feature_benefits(feature.key),
            cta_text=UPGRADE_CTA,
            social_proof=self._settings.get_discovery_social_proof(),
        )

        prompt = self._prompt_store.save_upgrade_prompt(NewUpgradePrompt(
            user_id=user_id,
            prompt_type=PromptType.FEATURE_DISCOVERY,
            feature_context=feature.key.value,
            prompt_content=content,
        ))

        logger.info("Upgrade prompt shown", extra={
            "user_id": user_id,
            "prompt_id": prompt.id,
            "prompt_type": PromptType.FEATURE_DISCOVERY.value,
            "feature": feature.key.value,
        })
        return prompt

    # ------------------------------------------------------------------
    # Flow
    # ------------------------------------------------------------------

    def generate_upgrade_flow(
        self,
        user_id: str,
        target_tier: Union[Tier, str],
        feature_name: Optional[str] = None,
        current_step: Optional[str] = None,
    ) -> List[FlowStep]:
        """
        Describe the upgrade flow towards target_tier.

        Always returns five steps in presentation order. Any lookup failure
        aborts the whole flow.

        Args:
            user_id: User being upgraded
            target_tier: premium or enterprise
            feature_name: Feature that triggered the flow, if any
            current_step: Step the UI is on; informational only

        Raises:
            ValueError: target_tier is not premium or enterprise
        """
        target = Tier(target_tier)
        if target == Tier.FREE:
            raise ValueError("target_tier must be premium or enterprise")

        current_tier = tier_for_subscription(
            self._subscriptions.get_user_active_subscription(user_id)
        )
        recommendations = self._feature_access.get_upgrade_recommendations(user_id)
        pricing = self._pricing.get_subscription_pricing()
        discount = self.get_available_discount(user_id)

        feature = catalog.find_feature(feature_name)

        steps = [
            FlowStep(
                step=FlowStepName.FEATURE_BLOCKED,
                data={
                    "feature_name": feature_name,
                    "feature": feature.to_dict() if feature else None,
                    "current_tier": current_tier.value,
                    "required_tier": target.value,
                },
                next_step=FlowStepName.VALUE_PROPOSITION,
                can_skip=False,
            ),
            FlowStep(
                step=FlowStepName.VALUE_PROPOSITION,
                data={
                    "current_tier": current_tier.value,
                    "target_tier": target.value,
                    "benefits": catalog.get_tier_benefits(target),
                    "personalized_reasons": list(recommendations.reasons),
                    "estimated_value": recommendations.estimated_value,
                },
                next_step=FlowStepName.PRICING_COMPARISON,
                can_skip=True,
            ),
            FlowStep(
                step=FlowStepName.PRICING_COMPARISON,
                data={
                    "pricing": {t.value: p.to_dict() for t, p in pricing.items()},
                    "current_tier": current_tier.value,
                    "target_tier": target.value,
                    "discount": discount.to_dict() if discount else None,
                    "comparison": self._pricing_comparison(pricing, current_tier, target),
                },
                next_step=FlowStepName.PAYMENT,
                can_skip=False,
            ),
            FlowStep(
                step=FlowStepName.PAYMENT,
                data={
                    "subscription_options": self._subscription_options(pricing[target]),
                    "payment_methods": self._settings.get_payment_methods(),
                    "security_features": self._settings.get_security_features(),
                },
                next_step=FlowStepName.CONFIRMATION,
                can_skip=False,
            ),
            FlowStep(
                step=FlowStepName.CONFIRMATION,
                data={
                    "welcome_message": f"Welcome to {target.value} tier!",
                    "next_steps": catalog.get_onboarding_steps(target),
                    "new_features": [
                        f.to_dict() for f in catalog.get_features_by_tier(target)
                    ],
                },
                can_skip=False,
            ),
        ]

        logger.debug("Upgrade flow generated", extra={
            "user_id": user_id,
            "current_tier": current_tier.value,
            "target_tier": target.value,
            "feature_name": feature_name,
            "current_step": current_step,
        })
        return steps

    # ------------------------------------------------------------------
    # Recommendations and offers
    # ------------------------------------------------------------------

    def get_available_discount(self, user_id: str) -> Optional[Discount]:
        """Current discount offer, valid for the configured number of days."""
        policy = self._settings.get_discount_policy()
        if not policy.get("enabled"):
            return None
        return Discount(
            percentage=int(policy["percentage"]),
            valid_until=self._clock() + timedelta(days=int(policy["valid_days"])),
        )

    def get_personalized_recommendations(self, user_id: str) -> PersonalizedRecommendation:
        recommendations = self._feature_access.get_upgrade_recommendations(user_id)
        usage = self._feature_access.get_user_feature_usage(user_id)

        return PersonalizedRecommendation(
            recommended_tier=recommendations.recommended_tier,
            urgency=self._usage_urgency(usage),
            personalized_message=self._personalized_message(usage),
            key_benefits=[f.description for f in recommendations.features[:3]],
            estimated_savings=self._estimated_savings(usage),
            social_proof=self._settings.get_tier_social_proof(recommendations.recommended_tier),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _find_feature(feature_name: Optional[str]) -> FeatureDefinition:
        feature = catalog.find_feature(feature_name)
        if feature is None:
            logger.warning("Upgrade prompt requested for unknown feature", extra={
                "feature_name": feature_name,
            })
            raise FeatureNotFoundError(feature_name)
        return feature

    @staticmethod
    def _pricing_comparison(
        pricing: Dict[Tier, TierPricing],
        current_tier: Tier,
        target_tier: Tier,
    ) -> Dict[str, Any]:
        current_price = pricing[current_tier].monthly
        target = pricing[target_tier]
        return {
            "current": {"tier": current_tier.value, "price": current_price},
            "target": {"tier": target_tier.value, "price": target.monthly},
            "difference": target.monthly - current_price,
            "annual_savings": target.monthly * 12 - target.yearly,
        }

    @staticmethod
    def _subscription_options(pricing: TierPricing) -> List[Dict[str, Any]]:
        options = []
        for cycle, months in _CYCLE_MONTHS.items():
            price = pricing.for_cycle(cycle)
            options.append({
                "cycle": cycle.value,
                "price": price,
                "monthly_equivalent": (price / months).quantize(_CENTS, rounding=ROUND_HALF_UP),
                "total_price": price,
                "savings": pricing.monthly * months - price,
                "popular": cycle == BillingCycle.YEARLY,
            })
        return options

    @staticmethod
    def _usage_urgency(usage: UsageSnapshot) -> UrgencyLevel:
        if usage.wardrobe_items > 90 or usage.outfits > 45:
            return UrgencyLevel.HIGH
        if usage.wardrobe_items > 70 or usage.outfits > 35:
            return UrgencyLevel.MEDIUM
        return UrgencyLevel.LOW

    @staticmethod
    def _personalized_message(usage: UsageSnapshot) -> str:
        if usage.wardrobe_items > 90:
            return "You're a power user! Unlock unlimited cataloging to organize your extensive wardrobe."
        if usage.social_follows > 40:
            return "Your social engagement is growing! Upgrade for enhanced social features."
        if usage.monthly_uploads > 15:
            return "You're actively building your wardrobe. Get insights with advanced analytics."
        return "Take your fashion journey to the next level with premium features."

    @staticmethod
    def _estimated_savings(usage: UsageSnapshot) -> Decimal:
        sellable = min(Decimal(usage.wardrobe_items) * _SELLABLE_SHARE, _MAX_SELLABLE_ITEMS)
        savings = sellable * _AVERAGE_ITEM_VALUE * _NET_AFTER_FEES
        return savings.quantize(_CENTS, rounding=ROUND_HALF_UP)
