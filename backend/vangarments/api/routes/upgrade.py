"""
Upgrade and feature access API routes.

All routes identify the caller by the X-User-Id header set by the gateway.
Handlers are plain functions; FastAPI runs them in its threadpool because
the services issue blocking database calls.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from vangarments.api.dependencies.entitlements import (
    get_current_user_id,
    get_feature_access_service,
    get_upgrade_prompt_repository,
    get_upgrade_system_service,
    require_feature,
)
from vangarments.api.schemas.upgrade import (
    AccessDecisionResponse,
    FeatureBreakdownResponse,
    FeatureDiscoveryPromptRequest,
    FlowStepResponse,
    GatedAccessResponse,
    RecommendationsResponse,
    UpgradePromptResponse,
    UsageLimitPromptRequest,
    UsageLimitsResponse,
    UsageResponse,
)
from vangarments.entitlements.errors import FeatureNotFoundError
from vangarments.entitlements.models import AccessContext, FeatureKey, Tier
from vangarments.entitlements.service import FeatureAccessService
from vangarments.repositories.upgrade_prompt_repository import UpgradePromptRepository
from vangarments.services.upgrade_system import UpgradeSystemService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upgrade", tags=["upgrade"])

_UPGRADE_TARGETS = "^(premium|enterprise)$"


# =============================================================================
# Feature access
# =============================================================================

@router.get("/features", response_model=FeatureBreakdownResponse)
def get_features(
    include_restricted: bool = Query(True, description="Include features the tier does not unlock"),
    user_id: str = Depends(get_current_user_id),
    service: FeatureAccessService = Depends(get_feature_access_service),
):
    """Available and restricted features for the caller's tier."""
    breakdown = service.get_user_available_features(user_id, include_restricted)
    return FeatureBreakdownResponse.model_validate(breakdown.to_dict())


@router.get("/features/{feature_key}/access", response_model=AccessDecisionResponse)
def check_feature_access(
    feature_key: FeatureKey,
    current_usage: Optional[int] = Query(None, ge=0, description="Current usage of the feature"),
    has_account_linking: bool = Query(False, description="Caller has a linked social account"),
    user_id: str = Depends(get_current_user_id),
    service: FeatureAccessService = Depends(get_feature_access_service),
):
    """
    Check access to a single feature.

    A denial is a 200 response with has_access=false; use require_feature()
    to turn denials into 402s on protected routes.
    """
    decision = service.has_feature_access(
        user_id,
        feature_key,
        AccessContext(current_usage=current_usage, has_account_linking=has_account_linking),
    )
    return AccessDecisionResponse.model_validate(decision.to_dict())


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    user_id: str = Depends(get_current_user_id),
    service: FeatureAccessService = Depends(get_feature_access_service),
):
    """Current usage counters and the limits report."""
    usage = service.get_user_feature_usage(user_id)
    limits = service.check_usage_limits(user_id)
    return UsageResponse.model_validate({
        "usage": usage.to_dict(),
        "limits": limits.to_dict(),
    })


@router.get("/usage-limits", response_model=UsageLimitsResponse)
def get_usage_limits(
    user_id: str = Depends(get_current_user_id),
    service: FeatureAccessService = Depends(get_feature_access_service),
):
    """Features near or at their free-tier cap."""
    report = service.check_usage_limits(user_id)
    return UsageLimitsResponse.model_validate(report.to_dict())


@router.get("/recommendations", response_model=RecommendationsResponse)
def get_recommendations(
    user_id: str = Depends(get_current_user_id),
    feature_access: FeatureAccessService = Depends(get_feature_access_service),
    upgrade_service: UpgradeSystemService = Depends(get_upgrade_system_service),
):
    recommendation = feature_access.get_upgrade_recommendations(user_id)
    personalized = upgrade_service.get_personalized_recommendations(user_id)
    return RecommendationsResponse.model_validate({
        "recommendation": recommendation.to_dict(),
        "personalized": personalized.to_dict(),
    })


# =============================================================================
# Upgrade flow
# =============================================================================

@router.get("/flow/{target_tier}", response_model=List[FlowStepResponse])
def get_upgrade_flow(
    target_tier: str = Path(..., pattern=_UPGRADE_TARGETS),
    feature_name: Optional[str] = Query(None, description="Feature that triggered the flow"),
    current_step: Optional[str] = Query(None, description="Step the client is currently showing"),
    user_id: str = Depends(get_current_user_id),
    service: UpgradeSystemService = Depends(get_upgrade_system_service),
):
    """The five-step upgrade flow towards target_tier."""
    steps = service.generate_upgrade_flow(
        user_id,
        Tier(target_tier),
        feature_name=feature_name,
        current_step=current_step,
    )
    return [FlowStepResponse.model_validate(step.to_dict()) for step in steps]


@router.post(
    "/prompts/usage-limit",
    response_model=UpgradePromptResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_usage_limit_prompt(
    body: UsageLimitPromptRequest,
    user_id: str = Depends(get_current_user_id),
    service: UpgradeSystemService = Depends(get_upgrade_system_service),
):
    try:
        prompt = service.trigger_upgrade_prompt(
            user_id,
            feature_name=body.feature_name,
            current_usage=body.current_usage,
            limit=body.limit,
            action=body.action,
        )
    except FeatureNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    return UpgradePromptResponse.model_validate(prompt.to_dict())


@router.post(
    "/prompts/feature-discovery",
    response_model=UpgradePromptResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_feature_discovery_prompt(
    body: FeatureDiscoveryPromptRequest,
    user_id: str = Depends(get_current_user_id),
    service: UpgradeSystemService = Depends(get_upgrade_system_service),
):
    try:
        prompt = service.show_feature_discovery_prompt(user_id, body.feature_name)
    except FeatureNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    return UpgradePromptResponse.model_validate(prompt.to_dict())


@router.get(
    "/prompts",
    response_model=List[UpgradePromptResponse],
    dependencies=[Depends(require_feature(FeatureKey.ADVANCED_ANALYTICS))],
)
def list_upgrade_prompts(
    limit: int = Query(50, ge=1, le=200, description="Maximum number of prompts to return"),
    user_id: str = Depends(get_current_user_id),
    prompts: UpgradePromptRepository = Depends(get_upgrade_prompt_repository),
):
    """Prompts shown to the caller, newest first. Part of advanced analytics."""
    return [
        UpgradePromptResponse.model_validate(prompt.to_dict())
        for prompt in prompts.list_for_user(user_id, limit=limit)
    ]


# =============================================================================
# Gated areas
# =============================================================================

def _gated_access(
    user_id: str,
    feature: FeatureKey,
    feature_access: FeatureAccessService,
    upgrade_service: UpgradeSystemService,
) -> GatedAccessResponse:
    decision = feature_access.has_feature_access(user_id, feature)
    if decision.has_access:
        return GatedAccessResponse(has_access=True)

    target = decision.upgrade_required or Tier.PREMIUM
    steps = upgrade_service.generate_upgrade_flow(user_id, target, feature_name=feature.value)
    return GatedAccessResponse.model_validate({
        **decision.to_dict(),
        "target_tier": target.value,
        "upgrade_flow": [step.to_dict() for step in steps],
    })


@router.get("/marketplace-access", response_model=GatedAccessResponse)
def get_marketplace_access(
    user_id: str = Depends(get_current_user_id),
    feature_access: FeatureAccessService = Depends(get_feature_access_service),
    upgrade_service: UpgradeSystemService = Depends(get_upgrade_system_service),
):
    """Marketplace access, with the premium upgrade flow when denied."""
    return _gated_access(user_id, FeatureKey.MARKETPLACE_TRADING, feature_access, upgrade_service)


@router.get("/professional-tools-access", response_model=GatedAccessResponse)
def get_professional_tools_access(
    user_id: str = Depends(get_current_user_id),
    feature_access: FeatureAccessService = Depends(get_feature_access_service),
    upgrade_service: UpgradeSystemService = Depends(get_upgrade_system_service),
):
    """Professional tools access, with the enterprise upgrade flow when denied."""
    return _gated_access(user_id, FeatureKey.PROFESSIONAL_TOOLS, feature_access, upgrade_service)


@router.get("/social-features-access", response_model=GatedAccessResponse)
def get_social_features_access(
    user_id: str = Depends(get_current_user_id),
    feature_access: FeatureAccessService = Depends(get_feature_access_service),
    upgrade_service: UpgradeSystemService = Depends(get_upgrade_system_service),
):
    """Enhanced social features access, with personalized recommendations when denied."""
    decision = feature_access.has_feature_access(user_id, FeatureKey.ENHANCED_SOCIAL_FEATURES)
    if decision.has_access:
        return GatedAccessResponse(has_access=True)

    recommendations = upgrade_service.get_personalized_recommendations(user_id)
    return GatedAccessResponse.model_validate({
        **decision.to_dict(),
        "target_tier": (decision.upgrade_required or Tier.PREMIUM).value,
        "recommendations": recommendations.to_dict(),
    })
