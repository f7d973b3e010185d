"""
Tier Catalog — the single source of truth for feature gating.

Maps every FeatureKey to its FeatureDefinition and holds the side tables the
upgrade flow renders (feature benefits, tier benefits, onboarding steps).

CRITICAL: Do NOT hardcode tier requirements or usage caps elsewhere.
"""

from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

from vangarments.entitlements.models import (
    FeatureCategory,
    FeatureDefinition,
    FeatureKey,
    Tier,
    UsageLimit,
)


def _feature(key, name, description, category, tier, **kwargs) -> FeatureDefinition:
    return FeatureDefinition(
        key=key,
        name=name,
        description=description,
        category=category,
        tier=tier,
        **kwargs,
    )


_FEATURE_LIST = [
    # -- Free tier (core) --
    _feature(
        FeatureKey.WARDROBE_CATALOGING,
        "Wardrobe Cataloging",
        "Digital wardrobe organization and management",
        FeatureCategory.CORE,
        Tier.FREE,
        usage_limit=UsageLimit(
            cap=100,
            unit="items",
            usage_field="wardrobe_items",
            warning_threshold_pct=80,
            blocked_message="Wardrobe item limit reached. Upgrade to add more items.",
            warning_message="You're using {percentage}% of your wardrobe limit.",
        ),
    ),
    _feature(
        FeatureKey.OUTFIT_CREATION,
        "Outfit Creation",
        "Create and save outfit combinations",
        FeatureCategory.CORE,
        Tier.FREE,
        usage_limit=UsageLimit(
            cap=50,
            unit="items",
            usage_field="outfits",
            warning_threshold_pct=80,
            blocked_message="Outfit limit reached. Upgrade to create more outfits.",
            warning_message="You're using {percentage}% of your outfit limit.",
        ),
    ),
    _feature(
        FeatureKey.AI_BACKGROUND_REMOVAL,
        "AI Background Removal",
        "Automatic background removal from item photos",
        FeatureCategory.CORE,
        Tier.FREE,
    ),
    _feature(
        FeatureKey.AI_CATEGORIZATION,
        "AI Item Categorization",
        "Automatic item categorization using AI",
        FeatureCategory.CORE,
        Tier.FREE,
    ),
    _feature(
        FeatureKey.PHOTO_GUIDES,
        "Photography Guides",
        "Step-by-step photo instruction guides",
        FeatureCategory.CORE,
        Tier.FREE,
    ),
    _feature(
        FeatureKey.BRAND_PARTNERSHIP_LINKS,
        "Brand Partnership Links",
        "Access to national brand partnership links",
        FeatureCategory.CORE,
        Tier.FREE,
    ),
    # -- Free tier (social, account linking) --
    _feature(
        FeatureKey.BASIC_SOCIAL_SHARING,
        "Basic Social Sharing",
        "Share items with bio links",
        FeatureCategory.SOCIAL,
        Tier.FREE,
        requires_account_linking=True,
        usage_limit=UsageLimit(
            cap=50,
            unit="follows",
            usage_field="social_follows",
            warning_threshold_pct=80,
            blocked_message="Following limit reached. Upgrade for unlimited follows.",
            warning_message="You're using {percentage}% of your following limit.",
        ),
    ),
    _feature(
        FeatureKey.PROFILE_CUSTOMIZATION,
        "Profile Customization",
        "Basic profile customization options",
        FeatureCategory.SOCIAL,
        Tier.FREE,
        requires_account_linking=True,
    ),
    _feature(
        FeatureKey.CONTENT_DISCOVERY,
        "Content Discovery",
        "Browse and discover fashion content",
        FeatureCategory.SOCIAL,
        Tier.FREE,
    ),
    # -- Premium tier --
    _feature(
        FeatureKey.MARKETPLACE_TRADING,
        "Marketplace Trading",
        "Buy and sell fashion items on the marketplace",
        FeatureCategory.MARKETPLACE,
        Tier.PREMIUM,
    ),
    _feature(
        FeatureKey.ENHANCED_SOCIAL_FEATURES,
        "Enhanced Social Features",
        "Advanced social functionality and engagement",
        FeatureCategory.SOCIAL,
        Tier.PREMIUM,
    ),
    _feature(
        FeatureKey.ADVANCED_ANALYTICS,
        "Advanced Analytics",
        "Detailed wardrobe and usage analytics",
        FeatureCategory.ANALYTICS,
        Tier.PREMIUM,
    ),
    _feature(
        FeatureKey.STYLE_DNA_ANALYSIS,
        "Style DNA Analysis",
        "Personal style profiling and analysis",
        FeatureCategory.ANALYTICS,
        Tier.PREMIUM,
    ),
    _feature(
        FeatureKey.TREND_PREDICTIONS,
        "Trend Predictions",
        "Personalized fashion trend predictions",
        FeatureCategory.ANALYTICS,
        Tier.PREMIUM,
    ),
    _feature(
        FeatureKey.WARDROBE_OPTIMIZATION,
        "Wardrobe Optimization",
        "AI-powered wardrobe optimization recommendations",
        FeatureCategory.ANALYTICS,
        Tier.PREMIUM,
    ),
    _feature(
        FeatureKey.UNLIMITED_CATALOGING,
        "Unlimited Cataloging",
        "Unlimited wardrobe items",
        FeatureCategory.CORE,
        Tier.PREMIUM,
    ),
    # -- Enterprise tier --
    _feature(
        FeatureKey.PROFESSIONAL_TOOLS,
        "Professional Tools",
        "Business and professional fashion tools",
        FeatureCategory.PROFESSIONAL,
        Tier.ENTERPRISE,
    ),
    _feature(
        FeatureKey.BRAND_MANAGEMENT,
        "Brand Management",
        "Advanced brand and business management features",
        FeatureCategory.PROFESSIONAL,
        Tier.ENTERPRISE,
    ),
    _feature(
        FeatureKey.API_ACCESS,
        "API Access",
        "Full API access for integrations",
        FeatureCategory.PROFESSIONAL,
        Tier.ENTERPRISE,
        override_flag="api_access",
    ),
    _feature(
        FeatureKey.CUSTOM_BRANDING,
        "Custom Branding",
        "White-label and custom branding options",
        FeatureCategory.PROFESSIONAL,
        Tier.ENTERPRISE,
        override_flag="custom_branding",
    ),
    _feature(
        FeatureKey.PRIORITY_SUPPORT,
        "Priority Support",
        "Dedicated customer support",
        FeatureCategory.PROFESSIONAL,
        Tier.ENTERPRISE,
    ),
]

# Read-only view; declaration order is preserved and is the reporting order.
FEATURES: Mapping[FeatureKey, FeatureDefinition] = MappingProxyType(
    {f.key: f for f in _FEATURE_LIST}
)

_DEFAULT_BENEFITS = ("Enhanced functionality", "Priority support", "Advanced features")

FEATURE_BENEFITS: Mapping[FeatureKey, tuple] = MappingProxyType({
    FeatureKey.WARDROBE_CATALOGING: (
        "Unlimited wardrobe items",
        "Advanced organization tools",
        "Detailed analytics and insights",
    ),
    FeatureKey.OUTFIT_CREATION: (
        "Unlimited outfits",
        "Outfit planning calendar",
        "Style suggestions for every occasion",
    ),
    FeatureKey.MARKETPLACE_TRADING: (
        "Monetize your wardrobe",
        "Access to premium buyers",
        "Advanced selling tools",
    ),
    FeatureKey.ADVANCED_ANALYTICS: (
        "Detailed usage insights",
        "Cost-per-wear analysis",
        "Style DNA profiling",
    ),
    FeatureKey.ENHANCED_SOCIAL_FEATURES: (
        "Unlimited follows",
        "Advanced engagement tools",
        "Priority in feeds",
    ),
    FeatureKey.BASIC_SOCIAL_SHARING: (
        "Unlimited follows",
        "Advanced engagement tools",
        "Priority in feeds",
    ),
})

TIER_BENEFITS: Mapping[Tier, tuple] = MappingProxyType({
    Tier.PREMIUM: (
        "Unlimited wardrobe cataloging",
        "Marketplace trading capabilities",
        "Advanced analytics and insights",
        "Enhanced social features",
        "Priority customer support",
    ),
    Tier.ENTERPRISE: (
        "All Premium features",
        "Professional business tools",
        "Custom branding options",
        "API access for integrations",
        "Dedicated account manager",
    ),
})

ONBOARDING_STEPS: Mapping[Tier, tuple] = MappingProxyType({
    Tier.PREMIUM: (
        {
            "title": "Explore Marketplace",
            "description": "Start selling items from your wardrobe",
            "action": "list_first_item",
        },
        {
            "title": "View Analytics",
            "description": "Check your wardrobe insights and style DNA",
            "action": "view_analytics",
        },
        {
            "title": "Unlimited Cataloging",
            "description": "Add more items to your wardrobe",
            "action": "add_items",
        },
    ),
    Tier.ENTERPRISE: (
        {
            "title": "Set Up Business Profile",
            "description": "Configure your professional brand presence",
            "action": "setup_business",
        },
        {
            "title": "API Integration",
            "description": "Connect your existing systems",
            "action": "setup_api",
        },
        {
            "title": "Custom Branding",
            "description": "Apply your brand colors and logo",
            "action": "customize_branding",
        },
    ),
})


def get_all_features() -> Mapping[FeatureKey, FeatureDefinition]:
    """Full catalog, in declaration order."""
    return FEATURES


def get_feature(key: Union[FeatureKey, str]) -> FeatureDefinition:
    """
    Look up a feature by key.

    Raises:
        ValueError: If key is a string that is not a FeatureKey value.
    """
    return FEATURES[FeatureKey(key)]


def find_feature(name: Optional[str]) -> Optional[FeatureDefinition]:
    """Look up a user-supplied feature name. Returns None when unknown."""
    if not name:
        return None
    try:
        return FEATURES[FeatureKey(name)]
    except ValueError:
        return None


def get_features_by_category(category: Union[FeatureCategory, str]) -> List[FeatureDefinition]:
    category = FeatureCategory(category)
    return [f for f in FEATURES.values() if f.category == category]


def get_features_by_tier(tier: Union[Tier, str]) -> List[FeatureDefinition]:
    tier = Tier(tier)
    return [f for f in FEATURES.values() if f.tier == tier]


def get_limited_features() -> List[FeatureDefinition]:
    """Usage-limited features, in declaration order."""
    return [f for f in FEATURES.values() if f.usage_limit is not None]


def get_feature_benefits(key: Union[FeatureKey, str]) -> List[str]:
    try:
        key = FeatureKey(key)
    except ValueError:
        return list(_DEFAULT_BENEFITS)
    return list(FEATURE_BENEFITS.get(key, _DEFAULT_BENEFITS))


def get_tier_benefits(tier: Tier) -> List[str]:
    return list(TIER_BENEFITS.get(tier, ()))


def get_onboarding_steps(tier: Tier) -> List[Dict[str, str]]:
    return [dict(step) for step in ONBOARDING_STEPS.get(tier, ())]
