"""
Entitlement models — canonical types for the tier-based entitlement system.

Provides:
- Tier / FeatureCategory / FeatureKey: closed enumerations
- FeatureDefinition / UsageLimit: static catalog records
- SubscriptionRecord / UsageSnapshot: inputs supplied by the lookups
- AccessContext / AccessDecision: evaluator input and output
- UsageLimitReport, FeatureBreakdown, UpgradeRecommendation: aggregate results
- NewUpgradePrompt / UpgradePrompt / FlowStep: upgrade flow outputs

All value objects are frozen dataclasses. They are built fresh per call and
are safe to share across threads.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Tier(str, Enum):
    """Subscription tiers, ordered free < premium < enterprise."""
    FREE = "free"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def is_unlimited(self) -> bool:
        """Premium and enterprise bypass numeric usage caps."""
        return self.rank > 0

    @classmethod
    def from_subscription_type(cls, value: Optional[str]) -> "Tier":
        """
        Map a stored subscription type to a tier.

        Billing stores the free plan as "basic"; anything unrecognised is free.
        """
        normalized = (value or "").lower()
        if normalized == "basic":
            return cls.FREE
        try:
            return cls(normalized)
        except ValueError:
            return cls.FREE


_TIER_RANK = {
    Tier.FREE: 0,
    Tier.PREMIUM: 1,
    Tier.ENTERPRISE: 2,
}


class FeatureCategory(str, Enum):
    """Feature groupings shown in the storefront."""
    CORE = "core"
    SOCIAL = "social"
    MARKETPLACE = "marketplace"
    PROFESSIONAL = "professional"
    ANALYTICS = "analytics"
    OTHER = "other"


class FeatureKey(str, Enum):
    """Identifiers of every feature in the tier catalog."""
    # Free tier
    WARDROBE_CATALOGING = "wardrobe_cataloging"
    OUTFIT_CREATION = "outfit_creation"
    AI_BACKGROUND_REMOVAL = "ai_background_removal"
    AI_CATEGORIZATION = "ai_categorization"
    PHOTO_GUIDES = "photo_guides"
    BRAND_PARTNERSHIP_LINKS = "brand_partnership_links"
    BASIC_SOCIAL_SHARING = "basic_social_sharing"
    PROFILE_CUSTOMIZATION = "profile_customization"
    CONTENT_DISCOVERY = "content_discovery"
    # Premium tier
    MARKETPLACE_TRADING = "marketplace_trading"
    ENHANCED_SOCIAL_FEATURES = "enhanced_social_features"
    ADVANCED_ANALYTICS = "advanced_analytics"
    STYLE_DNA_ANALYSIS = "style_dna_analysis"
    TREND_PREDICTIONS = "trend_predictions"
    WARDROBE_OPTIMIZATION = "wardrobe_optimization"
    UNLIMITED_CATALOGING = "unlimited_cataloging"
    # Enterprise tier
    PROFESSIONAL_TOOLS = "professional_tools"
    BRAND_MANAGEMENT = "brand_management"
    API_ACCESS = "api_access"
    CUSTOM_BRANDING = "custom_branding"
    PRIORITY_SUPPORT = "priority_support"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states owned by the billing flow."""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    SUSPENDED = "suspended"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PromptType(str, Enum):
    """Why an upgrade prompt was shown."""
    USAGE_LIMIT = "usage_limit"
    FEATURE_DISCOVERY = "feature_discovery"


class UrgencyLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FlowStepName(str, Enum):
    """Upgrade flow steps, in presentation order."""
    FEATURE_BLOCKED = "feature_blocked"
    VALUE_PROPOSITION = "value_proposition"
    PRICING_COMPARISON = "pricing_comparison"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UsageLimit:
    """
    Numeric cap on a free-tier feature.

    usage_field names the UsageSnapshot counter the cap is measured against.
    The cap is an inclusive ceiling: usage equal to the cap is exhausted.
    """
    cap: int
    unit: str
    usage_field: str
    warning_threshold_pct: float
    blocked_message: str
    warning_message: str

    def percentage(self, usage: int) -> float:
        return usage * 100 / self.cap

    def is_exhausted(self, usage: int) -> bool:
        return usage >= self.cap

    def denial_message(self) -> str:
        return f"Maximum {self.cap} {self.unit} allowed"


@dataclass(frozen=True)
class FeatureDefinition:
    """
    Static catalog entry for a single feature.

    override_flag names a SubscriptionFeatures flag that grants the feature
    independently of tier rank.
    """
    key: FeatureKey
    name: str
    description: str
    category: FeatureCategory
    tier: Tier
    requires_account_linking: bool = False
    usage_limit: Optional[UsageLimit] = None
    override_flag: Optional[str] = None

    @property
    def is_usage_limited(self) -> bool:
        return self.usage_limit is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "key": self.key.value,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "tier": self.tier.value,
            "requires_account_linking": self.requires_account_linking,
        }
        if self.usage_limit is not None:
            data["limit"] = {
                "cap": self.usage_limit.cap,
                "unit": self.usage_limit.unit,
            }
        return data


# ---------------------------------------------------------------------------
# Lookup inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubscriptionFeatures:
    """Per-subscription boolean feature flags."""
    advertising_access: bool = False
    data_intelligence: bool = False
    advanced_analytics: bool = False
    priority_support: bool = False
    custom_branding: bool = False
    api_access: bool = False

    def is_enabled(self, flag: str) -> bool:
        return bool(getattr(self, flag, False))

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SubscriptionFeatures":
        """Accept both snake_case and the camelCase keys billing writes."""
        data = data or {}
        camel = {
            "advertisingAccess": "advertising_access",
            "dataIntelligence": "data_intelligence",
            "advancedAnalytics": "advanced_analytics",
            "prioritySupport": "priority_support",
            "customBranding": "custom_branding",
            "apiAccess": "api_access",
        }
        values = {}
        for key, value in data.items():
            name = camel.get(key, key)
            if name in cls.__dataclass_fields__:
                values[name] = bool(value)
        return cls(**values)


@dataclass(frozen=True)
class SubscriptionRecord:
    """A user's subscription as returned by the subscription lookup."""
    id: str
    user_id: str
    subscription_type: Tier
    features: SubscriptionFeatures = field(default_factory=SubscriptionFeatures)
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    amount: Decimal = Decimal("0")
    currency: str = "BRL"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE


@dataclass(frozen=True)
class UsageSnapshot:
    """Current usage counters for a user. Recomputed on every query."""
    wardrobe_items: int = 0
    outfits: int = 0
    social_follows: int = 0
    marketplace_listings: int = 0
    monthly_uploads: int = 0

    def get(self, usage_field: str) -> int:
        return getattr(self, usage_field)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Evaluator inputs/outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccessContext:
    """Optional request context for an access check."""
    current_usage: Optional[int] = None
    has_account_linking: bool = False
    action: Optional[str] = None

    def __post_init__(self):
        if self.current_usage is not None and self.current_usage < 0:
            raise ValueError("current_usage must be >= 0")


@dataclass(frozen=True)
class AccessDecision:
    """Result of an access check. A denial is a result, never an exception."""
    has_access: bool
    reason: Optional[str] = None
    upgrade_required: Optional[Tier] = None

    @classmethod
    def granted(cls) -> "AccessDecision":
        return cls(has_access=True)

    @classmethod
    def denied(cls, reason: str, upgrade_required: Optional[Tier] = None) -> "AccessDecision":
        return cls(has_access=False, reason=reason, upgrade_required=upgrade_required)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"has_access": self.has_access}
        if self.reason is not None:
            data["reason"] = self.reason
        if self.upgrade_required is not None:
            data["upgrade_required"] = self.upgrade_required.value
        return data


@dataclass(frozen=True)
class UsageWarning:
    feature: str
    current: int
    limit: int
    percentage: float
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BlockedFeature:
    feature: str
    current: int
    limit: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UsageLimitReport:
    warnings: List[UsageWarning] = field(default_factory=list)
    blocked: List[BlockedFeature] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warnings": [w.to_dict() for w in self.warnings],
            "blocked": [b.to_dict() for b in self.blocked],
        }


@dataclass(frozen=True)
class RestrictedFeature:
    """A feature the user's tier does not unlock, with the reason why."""
    feature: FeatureDefinition
    reason: str
    upgrade_required: Optional[Tier] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.feature.to_dict()
        data["reason"] = self.reason
        data["upgrade_required"] = (
            self.upgrade_required.value if self.upgrade_required else None
        )
        return data


@dataclass(frozen=True)
class FeatureBreakdown:
    tier: Tier
    available: List[FeatureDefinition] = field(default_factory=list)
    restricted: List[RestrictedFeature] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier.value,
            "available": [f.to_dict() for f in self.available],
            "restricted": [r.to_dict() for r in self.restricted],
        }


@dataclass(frozen=True)
class UpgradeRecommendation:
    current_tier: Tier
    recommended_tier: Tier
    reasons: List[str]
    features: List[FeatureDefinition]
    estimated_value: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_tier": self.current_tier.value,
            "recommended_tier": self.recommended_tier.value,
            "reasons": list(self.reasons),
            "features": [f.to_dict() for f in self.features],
            "estimated_value": self.estimated_value,
        }


@dataclass(frozen=True)
class PersonalizedRecommendation:
    recommended_tier: Tier
    urgency: UrgencyLevel
    personalized_message: str
    key_benefits: List[str]
    estimated_savings: Decimal
    social_proof: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended_tier": self.recommended_tier.value,
            "urgency": self.urgency.value,
            "personalized_message": self.personalized_message,
            "key_benefits": list(self.key_benefits),
            "estimated_savings": self.estimated_savings,
            "social_proof": self.social_proof,
        }


# ---------------------------------------------------------------------------
# Upgrade prompts and flows
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PromptContent:
    title: str
    message: str
    benefits: List[str]
    cta_text: str
    urgency: Optional[UrgencyLevel] = None
    social_proof: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "title": self.title,
            "message": self.message,
            "benefits": list(self.benefits),
            "cta_text": self.cta_text,
        }
        if self.urgency is not None:
            data["urgency"] = self.urgency.value
        if self.social_proof is not None:
            data["social_proof"] = self.social_proof
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PromptContent":
        urgency = data.get("urgency")
        return cls(
            title=data["title"],
            message=data["message"],
            benefits=list(data.get("benefits", [])),
            cta_text=data["cta_text"],
            urgency=UrgencyLevel(urgency) if urgency else None,
            social_proof=data.get("social_proof"),
        )


@dataclass(frozen=True)
class NewUpgradePrompt:
    """A prompt about to be persisted. The store assigns id and shown_at."""
    user_id: str
    prompt_type: PromptType
    feature_context: Optional[str]
    prompt_content: PromptContent


@dataclass(frozen=True)
class UpgradePrompt:
    """A persisted upgrade prompt. Never mutated after creation."""
    id: str
    user_id: str
    prompt_type: PromptType
    feature_context: Optional[str]
    prompt_content: PromptContent
    shown_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "prompt_type": self.prompt_type.value,
            "feature_context": self.feature_context,
            "prompt_content": self.prompt_content.to_dict(),
            "shown_at": self.shown_at.isoformat(),
        }


@dataclass(frozen=True)
class TierPricing:
    monthly: Decimal
    quarterly: Decimal
    yearly: Decimal

    def for_cycle(self, cycle: BillingCycle) -> Decimal:
        return getattr(self, cycle.value)

    def to_dict(self) -> Dict[str, Decimal]:
        return {
            "monthly": self.monthly,
            "quarterly": self.quarterly,
            "yearly": self.yearly,
        }


@dataclass(frozen=True)
class Discount:
    percentage: int
    valid_until: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "percentage": self.percentage,
            "valid_until": self.valid_until.isoformat(),
        }


@dataclass(frozen=True)
class FlowStep:
    """One presentation step of an upgrade flow. Described, never executed."""
    step: FlowStepName
    data: Dict[str, Any]
    can_skip: bool
    next_step: Optional[FlowStepName] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.value,
            "data": self.data,
            "next_step": self.next_step.value if self.next_step else None,
            "can_skip": self.can_skip,
        }
