"""
Structured error classes for entitlement enforcement.
"""

from typing import Optional
from fastapi import status

from vangarments.entitlements.models import AccessDecision


class EntitlementError(Exception):
    """Base exception for entitlement errors."""
    pass


class FeatureNotFoundError(EntitlementError):
    """
    Raised when a user-supplied feature name is not in the catalog.

    Only user-triggered operations (upgrade prompts) raise this; internal
    callers pass FeatureKey members and cannot reach it.
    """

    def __init__(self, feature_name: Optional[str]):
        self.feature_name = feature_name
        super().__init__("Feature not found")


class FeatureAccessDeniedError(EntitlementError):
    """
    Raised by the HTTP layer when a route requires a feature the user lacks.

    Services never raise this: a denial is an AccessDecision result.
    """

    def __init__(
        self,
        feature: str,
        decision: AccessDecision,
        current_tier: Optional[str] = None,
        http_status: int = status.HTTP_402_PAYMENT_REQUIRED,
    ):
        """
        Args:
            feature: Feature key that was denied
            decision: The denial returned by the evaluator
            current_tier: Tier the user resolved to
            http_status: HTTP status code (default 402)
        """
        self.feature = feature
        self.decision = decision
        self.current_tier = current_tier
        self.http_status = http_status
        super().__init__(f"Feature '{feature}' denied: {decision.reason}")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        upgrade = self.decision.upgrade_required
        return {
            "error": "feature_access_denied",
            "feature": self.feature,
            "reason": self.decision.reason,
            "current_tier": self.current_tier,
            "upgrade_required": upgrade.value if upgrade else None,
            "machine_readable": {
                "code": self._get_reason_code(),
                "feature": self.feature,
            },
        }

    def _get_reason_code(self) -> str:
        """Get machine-readable reason code."""
        reason = self.decision.reason or ""
        if "account linking" in reason:
            return "account_linking_required"
        elif "Usage limit" in reason:
            return "usage_limit_reached"
        elif self.decision.upgrade_required:
            return "tier_upgrade_required"
        return "feature_not_entitled"
