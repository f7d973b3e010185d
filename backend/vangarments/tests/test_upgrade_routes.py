"""
API tests for the upgrade routes and the require_feature gate.

Services are wired with the in-memory fakes through dependency overrides,
so no database is needed.
"""

import logging

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from main import app
from vangarments.api.dependencies.entitlements import (
    get_feature_access_service,
    get_upgrade_prompt_repository,
    get_upgrade_system_service,
    require_feature,
)
from vangarments.entitlements.models import AccessDecision, FeatureKey, SubscriptionStatus, Tier
from vangarments.tests.conftest import make_subscription


@pytest.fixture
def client(feature_access, upgrade_service, prompt_store):
    app.dependency_overrides[get_feature_access_service] = lambda: feature_access
    app.dependency_overrides[get_upgrade_prompt_repository] = lambda: prompt_store
    app.dependency_overrides[get_upgrade_system_service] = lambda: upgrade_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _headers(user_id):
    return {"X-User-Id": user_id}


class TestIdentity:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_missing_user_header(self, client):
        response = client.get("/api/upgrade/features")

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing user identity"

    def test_blank_user_header(self, client):
        response = client.get("/api/upgrade/features", headers=_headers("  "))

        assert response.status_code == 401


class TestFeatureRoutes:

    def test_free_user_breakdown(self, client, free_user):
        response = client.get("/api/upgrade/features", headers=_headers(free_user))

        assert response.status_code == 200
        body = response.json()
        assert body["tier"] == "free"
        assert len(body["available"]) == 9
        assert len(body["restricted"]) == 12
        marketplace = next(f for f in body["restricted"] if f["key"] == "marketplace_trading")
        assert marketplace["upgrade_required"] == "premium"

    def test_breakdown_without_restricted(self, client, enterprise_user):
        response = client.get(
            "/api/upgrade/features",
            params={"include_restricted": "false"},
            headers=_headers(enterprise_user),
        )

        body = response.json()
        assert len(body["available"]) == 21
        assert body["restricted"] == []

    def test_access_granted(self, client, premium_user):
        response = client.get(
            "/api/upgrade/features/marketplace_trading/access",
            headers=_headers(premium_user),
        )

        assert response.status_code == 200
        assert response.json() == {"has_access": True, "reason": None, "upgrade_required": None}

    def test_access_denied_is_a_result(self, client, free_user):
        response = client.get(
            "/api/upgrade/features/professional_tools/access",
            headers=_headers(free_user),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["has_access"] is False
        assert body["upgrade_required"] == "enterprise"

    def test_access_with_usage_at_cap(self, client, free_user):
        response = client.get(
            "/api/upgrade/features/wardrobe_cataloging/access",
            params={"current_usage": 100},
            headers=_headers(free_user),
        )

        body = response.json()
        assert body["has_access"] is False
        assert body["reason"] == "Usage limit reached: Maximum 100 items allowed"

    def test_access_account_linking(self, client, free_user):
        denied = client.get(
            "/api/upgrade/features/profile_customization/access",
            headers=_headers(free_user),
        ).json()
        granted = client.get(
            "/api/upgrade/features/profile_customization/access",
            params={"has_account_linking": "true"},
            headers=_headers(free_user),
        ).json()

        assert denied["has_access"] is False
        assert denied["upgrade_required"] is None
        assert granted["has_access"] is True

    def test_unknown_feature_key(self, client, free_user):
        response = client.get(
            "/api/upgrade/features/non_existent_feature/access",
            headers=_headers(free_user),
        )

        assert response.status_code == 422

    def test_negative_usage_rejected(self, client, free_user):
        response = client.get(
            "/api/upgrade/features/wardrobe_cataloging/access",
            params={"current_usage": -1},
            headers=_headers(free_user),
        )

        assert response.status_code == 422


class TestUsageRoutes:

    def test_usage_limits(self, client, usage, free_user):
        usage.set(free_user, wardrobe_items=85, outfits=45, social_follows=48)

        response = client.get("/api/upgrade/usage-limits", headers=_headers(free_user))

        body = response.json()
        assert [w["feature"] for w in body["warnings"]] == [
            "wardrobe_cataloging",
            "outfit_creation",
            "basic_social_sharing",
        ]
        assert body["blocked"] == []

    def test_usage_includes_counters_and_report(self, client, usage, free_user):
        usage.set(free_user, wardrobe_items=100, marketplace_listings=2)

        body = client.get("/api/upgrade/usage", headers=_headers(free_user)).json()

        assert body["usage"]["wardrobe_items"] == 100
        assert body["usage"]["marketplace_listings"] == 2
        assert body["limits"]["blocked"][0]["feature"] == "wardrobe_cataloging"

    def test_recommendations(self, client, usage, free_user):
        usage.set(free_user, wardrobe_items=95)

        body = client.get("/api/upgrade/recommendations", headers=_headers(free_user)).json()

        assert body["recommendation"]["recommended_tier"] == "premium"
        assert body["recommendation"]["estimated_value"] == 23
        assert body["personalized"]["urgency"] == "high"
        assert body["personalized"]["estimated_savings"] == "380.00"


class TestFlowRoutes:

    def test_flow_for_premium(self, client, free_user):
        response = client.get(
            "/api/upgrade/flow/premium",
            params={"feature_name": "marketplace_trading"},
            headers=_headers(free_user),
        )

        assert response.status_code == 200
        steps = response.json()
        assert [s["step"] for s in steps] == [
            "feature_blocked",
            "value_proposition",
            "pricing_comparison",
            "payment",
            "confirmation",
        ]
        assert steps[-1]["next_step"] is None
        comparison = steps[2]["data"]["comparison"]
        assert comparison["annual_savings"] == "58.90"
        assert comparison["target"]["price"] == "29.90"

    @pytest.mark.parametrize("target", ["free", "platinum"])
    def test_invalid_target_tier(self, client, free_user, target):
        response = client.get(f"/api/upgrade/flow/{target}", headers=_headers(free_user))

        assert response.status_code == 422


class TestPromptRoutes:

    def test_usage_limit_prompt_created(self, client, prompt_store, free_user):
        response = client.post(
            "/api/upgrade/prompts/usage-limit",
            json={
                "feature_name": "wardrobe_cataloging",
                "current_usage": 95,
                "limit": 100,
                "action": "adding items",
            },
            headers=_headers(free_user),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["prompt_type"] == "usage_limit"
        assert body["prompt_content"]["urgency"] == "high"
        assert body["prompt_content"]["message"] == (
            "You're using 95% of your wardrobe_cataloging allowance. "
            "Upgrade to continue adding items."
        )
        assert len(prompt_store.saved) == 1

    def test_usage_limit_prompt_unknown_feature(self, client, prompt_store, free_user):
        response = client.post(
            "/api/upgrade/prompts/usage-limit",
            json={
                "feature_name": "non_existent_feature",
                "current_usage": 95,
                "limit": 100,
                "action": "adding items",
            },
            headers=_headers(free_user),
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Feature not found"
        assert prompt_store.saved == []

    def test_usage_limit_prompt_rejects_zero_limit(self, client, free_user):
        response = client.post(
            "/api/upgrade/prompts/usage-limit",
            json={
                "feature_name": "wardrobe_cataloging",
                "current_usage": 5,
                "limit": 0,
                "action": "adding items",
            },
            headers=_headers(free_user),
        )

        assert response.status_code == 422

    def test_feature_discovery_prompt(self, client, free_user):
        response = client.post(
            "/api/upgrade/prompts/feature-discovery",
            json={"feature_name": "advanced_analytics"},
            headers=_headers(free_user),
        )

        assert response.status_code == 201
        content = response.json()["prompt_content"]
        assert content["title"] == "Unlock Advanced Analytics"
        assert content["social_proof"] == "Join 10,000+ fashion enthusiasts who upgraded"

    def test_prompt_history_for_premium_user(self, client, upgrade_service, premium_user, free_user):
        upgrade_service.show_feature_discovery_prompt(premium_user, "api_access")
        upgrade_service.show_feature_discovery_prompt(premium_user, "brand_management")
        upgrade_service.show_feature_discovery_prompt(free_user, "advanced_analytics")

        response = client.get("/api/upgrade/prompts", headers=_headers(premium_user))

        assert response.status_code == 200
        assert [p["feature_context"] for p in response.json()] == ["brand_management", "api_access"]

    def test_prompt_history_requires_advanced_analytics(self, client, free_user, caplog):
        with caplog.at_level(logging.WARNING, logger="entitlements.audit"):
            response = client.get("/api/upgrade/prompts", headers=_headers(free_user))

        assert response.status_code == 402
        assert response.json()["detail"]["feature"] == "advanced_analytics"
        audit = [r for r in caplog.records if r.name == "entitlements.audit"]
        assert audit[0].audit_data["endpoint"] == "/api/upgrade/prompts"


class TestGatedAccess:

    def test_marketplace_granted(self, client, premium_user):
        body = client.get("/api/upgrade/marketplace-access", headers=_headers(premium_user)).json()

        assert body == {
            "has_access": True,
            "reason": None,
            "upgrade_required": None,
            "target_tier": None,
            "upgrade_flow": None,
            "recommendations": None,
        }

    def test_marketplace_denied_includes_flow(self, client, free_user):
        body = client.get("/api/upgrade/marketplace-access", headers=_headers(free_user)).json()

        assert body["has_access"] is False
        assert body["target_tier"] == "premium"
        assert len(body["upgrade_flow"]) == 5
        assert body["upgrade_flow"][0]["data"]["feature_name"] == "marketplace_trading"

    def test_professional_tools_for_premium(self, client, premium_user):
        body = client.get(
            "/api/upgrade/professional-tools-access",
            headers=_headers(premium_user),
        ).json()

        assert body["has_access"] is False
        assert body["target_tier"] == "enterprise"
        assert body["upgrade_flow"][0]["data"]["current_tier"] == "premium"

    def test_social_features_granted(self, client, premium_user):
        body = client.get("/api/upgrade/social-features-access", headers=_headers(premium_user)).json()

        assert body["has_access"] is True
        assert body["recommendations"] is None

    def test_social_features_denied_includes_recommendations(self, client, usage, free_user):
        usage.set(free_user, wardrobe_items=95, social_follows=45)

        response = client.get("/api/upgrade/social-features-access", headers=_headers(free_user))

        assert response.status_code == 200
        body = response.json()
        assert body["has_access"] is False
        assert body["upgrade_required"] == "premium"
        assert body["target_tier"] == "premium"
        assert body["upgrade_flow"] is None
        recommendations = body["recommendations"]
        assert recommendations["recommended_tier"] == "premium"
        assert recommendations["urgency"] == "high"
        assert recommendations["estimated_savings"] == "380.00"
        assert recommendations["key_benefits"][1] == "Advanced social functionality and engagement"


# =============================================================================
# require_feature gate
# =============================================================================

@pytest.fixture
def gated_client(feature_access):
    gated_app = FastAPI()

    @gated_app.get("/api/marketplace/listings")
    def list_listings(decision: AccessDecision = Depends(require_feature(FeatureKey.MARKETPLACE_TRADING))):
        return {"ok": decision.has_access}

    gated_app.dependency_overrides[get_feature_access_service] = lambda: feature_access
    return TestClient(gated_app)


class TestRequireFeature:

    def test_granted(self, gated_client, premium_user):
        response = gated_client.get("/api/marketplace/listings", headers=_headers(premium_user))

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_denied_returns_402_and_audits(self, gated_client, free_user, caplog):
        with caplog.at_level(logging.WARNING, logger="entitlements.audit"):
            response = gated_client.get("/api/marketplace/listings", headers=_headers(free_user))

        assert response.status_code == 402
        detail = response.json()["detail"]
        assert detail["error"] == "feature_access_denied"
        assert detail["current_tier"] == "free"
        assert detail["upgrade_required"] == "premium"
        assert detail["machine_readable"] == {
            "code": "tier_upgrade_required",
            "feature": "marketplace_trading",
        }

        audit = [r for r in caplog.records if r.name == "entitlements.audit"]
        assert len(audit) == 1
        assert audit[0].audit_data["endpoint"] == "/api/marketplace/listings"
        assert audit[0].audit_data["method"] == "GET"

    def test_cancelled_subscription_is_free(self, gated_client, subscriptions):
        subscriptions.set(make_subscription("user_lapsed", Tier.PREMIUM, status=SubscriptionStatus.CANCELLED))

        response = gated_client.get("/api/marketplace/listings", headers=_headers("user_lapsed"))

        assert response.status_code == 402
        assert response.json()["detail"]["current_tier"] == "free"

    def test_denial_looks_up_subscription_once(self, gated_client, subscriptions, free_user):
        subscriptions.calls.clear()

        response = gated_client.get("/api/marketplace/listings", headers=_headers(free_user))

        assert response.status_code == 402
        assert subscriptions.calls == [free_user]
