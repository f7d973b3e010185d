"""
Entitlement check dependencies.

Provides reusable FastAPI dependencies for the upgrade API:
- get_current_user_id: caller identity from the X-User-Id header
- get_feature_access_service / get_upgrade_system_service: request-scoped services
- require_feature: factory for route-level feature gates (402 on denial);
  used by the upgrade router and exported for the other API modules
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from vangarments.config.upgrade_settings import get_upgrade_settings_loader
from vangarments.database.session import get_db_session
from vangarments.entitlements.audit import AccessDenialEvent, get_audit_logger
from vangarments.entitlements.errors import FeatureAccessDeniedError
from vangarments.entitlements.models import AccessDecision, FeatureKey
from vangarments.entitlements.service import FeatureAccessService
from vangarments.repositories.subscription_repository import SubscriptionRepository
from vangarments.repositories.upgrade_prompt_repository import UpgradePromptRepository
from vangarments.repositories.usage_repository import UsageRepository
from vangarments.services.upgrade_system import UpgradeSystemService

logger = logging.getLogger(__name__)


def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Resolve the caller's user id.

    Authentication happens upstream; the gateway forwards the verified id.
    Raises 401 when the header is missing or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity",
        )
    return x_user_id.strip()


def get_subscription_repository(db_session: Session = Depends(get_db_session)) -> SubscriptionRepository:
    return SubscriptionRepository(db_session)


def get_usage_repository(db_session: Session = Depends(get_db_session)) -> UsageRepository:
    return UsageRepository(db_session)


def get_upgrade_prompt_repository(db_session: Session = Depends(get_db_session)) -> UpgradePromptRepository:
    return UpgradePromptRepository(db_session)


def get_feature_access_service(
    subscriptions: SubscriptionRepository = Depends(get_subscription_repository),
    usage: UsageRepository = Depends(get_usage_repository),
) -> FeatureAccessService:
    return FeatureAccessService(subscriptions, usage)


def get_upgrade_system_service(
    subscriptions: SubscriptionRepository = Depends(get_subscription_repository),
    feature_access: FeatureAccessService = Depends(get_feature_access_service),
    prompt_store: UpgradePromptRepository = Depends(get_upgrade_prompt_repository),
) -> UpgradeSystemService:
    settings = get_upgrade_settings_loader()
    return UpgradeSystemService(
        subscriptions=subscriptions,
        feature_access=feature_access,
        prompt_store=prompt_store,
        pricing=settings,
        settings=settings,
    )


def require_feature(feature: FeatureKey) -> Callable:
    """
    Factory function to create a feature gate dependency.

    Args:
        feature: The FeatureKey the route requires

    Returns:
        A FastAPI dependency that returns the granted AccessDecision, or
        raises 402 Payment Required with a structured body and writes an
        audit record.
    """

    def check_feature(
        request: Request,
        user_id: str = Depends(get_current_user_id),
        service: FeatureAccessService = Depends(get_feature_access_service),
    ) -> AccessDecision:
        tier, decision = service.evaluate_access(user_id, feature)
        if decision.has_access:
            return decision

        error = FeatureAccessDeniedError(
            feature=feature.value,
            decision=decision,
            current_tier=tier.value,
        )

        get_audit_logger().log_denial(AccessDenialEvent(
            user_id=user_id,
            feature_name=feature.value,
            tier=tier.value,
            reason=decision.reason,
            upgrade_required=(
                decision.upgrade_required.value if decision.upgrade_required else None
            ),
            endpoint=request.url.path,
            method=request.method,
        ))

        raise HTTPException(
            status_code=error.http_status,
            detail=error.to_dict(),
        )

    return check_feature
