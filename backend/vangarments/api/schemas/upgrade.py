"""
Schemas for the upgrade / feature access API.

Response models mirror the to_dict() shapes of the entitlement value objects.
Money fields are Decimal and serialize as strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from vangarments.entitlements.models import FeatureKey


# =============================================================================
# Request Models
# =============================================================================

class UsageLimitPromptRequest(BaseModel):
    """Request to show a usage-limit upgrade prompt."""
    feature_name: str = Field(..., min_length=1, description="Feature key that hit its limit")
    current_usage: int = Field(..., ge=0, description="Current usage count")
    limit: int = Field(..., gt=0, description="Usage cap for the feature")
    action: str = Field(..., min_length=1, description="What the user was doing, e.g. 'adding items'")


class FeatureDiscoveryPromptRequest(BaseModel):
    """Request to show a feature discovery prompt."""
    feature_name: str = Field(..., min_length=1, description="Feature key to promote")


# =============================================================================
# Response Models
# =============================================================================

class AccessDecisionResponse(BaseModel):
    """Result of a feature access check."""
    has_access: bool
    reason: Optional[str] = None
    upgrade_required: Optional[str] = None


class FeatureLimitResponse(BaseModel):
    cap: int
    unit: str


class FeatureResponse(BaseModel):
    """A catalog feature."""
    key: FeatureKey
    name: str
    description: str
    category: str
    tier: str
    requires_account_linking: bool = False
    limit: Optional[FeatureLimitResponse] = None


class RestrictedFeatureResponse(FeatureResponse):
    """A feature the user's tier does not unlock."""
    reason: str
    upgrade_required: Optional[str] = None


class FeatureBreakdownResponse(BaseModel):
    tier: str
    available: List[FeatureResponse]
    restricted: List[RestrictedFeatureResponse]


class UsageWarningResponse(BaseModel):
    feature: str
    current: int
    limit: int
    percentage: float
    message: str


class BlockedFeatureResponse(BaseModel):
    feature: str
    current: int
    limit: int
    message: str


class UsageLimitsResponse(BaseModel):
    warnings: List[UsageWarningResponse]
    blocked: List[BlockedFeatureResponse]


class UsageSnapshotResponse(BaseModel):
    wardrobe_items: int
    outfits: int
    social_follows: int
    marketplace_listings: int
    monthly_uploads: int


class UsageResponse(BaseModel):
    """Current counters plus the limits report."""
    usage: UsageSnapshotResponse
    limits: UsageLimitsResponse


class UpgradeRecommendationResponse(BaseModel):
    current_tier: str
    recommended_tier: str
    reasons: List[str]
    features: List[FeatureResponse]
    estimated_value: int


class PersonalizedRecommendationResponse(BaseModel):
    recommended_tier: str
    urgency: str
    personalized_message: str
    key_benefits: List[str]
    estimated_savings: Decimal
    social_proof: str


class RecommendationsResponse(BaseModel):
    recommendation: UpgradeRecommendationResponse
    personalized: PersonalizedRecommendationResponse


class FlowStepResponse(BaseModel):
    step: str
    data: Dict[str, Any]
    next_step: Optional[str] = None
    can_skip: bool


class PromptContentResponse(BaseModel):
    title: str
    message: str
    benefits: List[str]
    cta_text: str
    urgency: Optional[str] = None
    social_proof: Optional[str] = None


class UpgradePromptResponse(BaseModel):
    id: str
    user_id: str
    prompt_type: str
    feature_context: Optional[str] = None
    prompt_content: PromptContentResponse
    shown_at: datetime


class GatedAccessResponse(AccessDecisionResponse):
    """
    Access check for a gated area.

    When denied, carries either the upgrade flow or personalized
    recommendations, depending on the area.
    """
    target_tier: Optional[str] = None
    upgrade_flow: Optional[List[FlowStepResponse]] = None
    recommendations: Optional[PersonalizedRecommendationResponse] = None
