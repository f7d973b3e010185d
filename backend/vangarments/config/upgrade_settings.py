"""
Upgrade settings configuration loader.

Loads the pricing table, discount policy, payment options and social-proof
copy for the upgrade flow from config/upgrade_settings.yml.

Consumers:
  - UpgradeSystemService: pricing comparison, payment step, discounts, prompts

Usage:
    from vangarments.config.upgrade_settings import get_upgrade_settings_loader

    loader = get_upgrade_settings_loader()
    pricing = loader.get_subscription_pricing()   # {Tier.PREMIUM: TierPricing(...), ...}
    discount = loader.get_discount_policy()       # {"enabled": True, "percentage": 20, ...}
"""

import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

import yaml

from vangarments.entitlements.interfaces import PricingProvider
from vangarments.entitlements.models import Tier, TierPricing

logger = logging.getLogger(__name__)

# Fallbacks used when the YAML file is missing or a key is absent.
_FALLBACK_PRICING = {
    "free": {"monthly": "0", "quarterly": "0", "yearly": "0"},
    "premium": {"monthly": "29.90", "quarterly": "79.90", "yearly": "299.90"},
    "enterprise": {"monthly": "99.90", "quarterly": "269.90", "yearly": "999.90"},
}
_FALLBACK_DISCOUNT = {"enabled": True, "percentage": 20, "valid_days": 7}
_FALLBACK_PAYMENT_METHODS = ["credit_card", "pix", "boleto"]
_FALLBACK_SECURITY_FEATURES = ["ssl_encryption", "pci_compliance"]
_FALLBACK_SOCIAL_PROOF = {
    "discovery": "Join 10,000+ fashion enthusiasts who upgraded",
    "default": "Join thousands of satisfied users",
    "tiers": {
        "premium": "Join 15,000+ fashion enthusiasts who upgraded to Premium",
        "enterprise": "Trusted by 500+ fashion businesses and influencers",
    },
}


class UpgradeSettingsLoader(PricingProvider):
    """
    Thread-safe singleton loader for config/upgrade_settings.yml.

    Also serves as the PricingProvider injected into UpgradeSystemService.
    """

    _instance: Optional["UpgradeSettingsLoader"] = None
    _lock = Lock()

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized:
            return

        self._config_path = config_path
        self._raw: Dict[str, Any] = {}
        self._load_lock = Lock()

        self._load()
        self._initialized = True

    def _resolve_path(self) -> Path:
        if self._config_path:
            return Path(self._config_path)

        env_path = os.getenv("UPGRADE_SETTINGS_PATH")
        if env_path:
            return Path(env_path)

        candidates = [
            Path(__file__).parent.parent.parent.parent / "config" / "upgrade_settings.yml",
            Path(os.getcwd()) / "config" / "upgrade_settings.yml",
            Path(os.getcwd()) / ".." / "config" / "upgrade_settings.yml",
        ]

        for p in candidates:
            resolved = p.resolve()
            if resolved.exists():
                return resolved

        raise FileNotFoundError(
            f"upgrade_settings.yml not found in: {[str(p) for p in candidates]}"
        )

    def _load(self) -> None:
        with self._load_lock:
            try:
                path = self._resolve_path()
                logger.info("Loading upgrade settings from %s", path)

                with open(path, "r") as f:
                    self._raw = yaml.safe_load(f) or {}

                logger.info(
                    "Loaded upgrade settings: pricing tiers=%s, discount_enabled=%s",
                    list(self._raw.get("pricing", {}).keys()),
                    self.get_discount_policy()["enabled"],
                )
            except FileNotFoundError:
                logger.warning(
                    "upgrade_settings.yml not found, using fallback defaults"
                )
                self._raw = {}

    def reload(self) -> None:
        """Re-read the YAML from disk."""
        self._load()

    # ------------------------------------------------------------------
    # PricingProvider
    # ------------------------------------------------------------------

    def get_subscription_pricing(self) -> Dict[Tier, TierPricing]:
        """
        Return the pricing table for every tier.

        Tiers missing from the file fall back to the built-in prices.
        """
        configured = self._raw.get("pricing", {})
        pricing = {}
        for tier in Tier:
            fallback = _FALLBACK_PRICING[tier.value]
            entry = configured.get(tier.value) or {}
            pricing[tier] = TierPricing(
                monthly=_to_decimal(entry.get("monthly", fallback["monthly"])),
                quarterly=_to_decimal(entry.get("quarterly", fallback["quarterly"])),
                yearly=_to_decimal(entry.get("yearly", fallback["yearly"])),
            )
        return pricing

    # ------------------------------------------------------------------
    # Flow settings
    # ------------------------------------------------------------------

    def get_currency(self) -> str:
        return self._raw.get("currency", "BRL")

    def get_discount_policy(self) -> Dict[str, Any]:
        """
        Return the discount policy.

        Returns:
            {"enabled": bool, "percentage": int, "valid_days": int}
        """
        policy = dict(_FALLBACK_DISCOUNT)
        policy.update(self._raw.get("discount") or {})
        return policy

    def get_payment_methods(self) -> List[str]:
        return list(self._raw.get("payment_methods", _FALLBACK_PAYMENT_METHODS))

    def get_security_features(self) -> List[str]:
        return list(self._raw.get("security_features", _FALLBACK_SECURITY_FEATURES))

    def get_discovery_social_proof(self) -> str:
        proof = self._raw.get("social_proof") or {}
        return proof.get("discovery", _FALLBACK_SOCIAL_PROOF["discovery"])

    def get_tier_social_proof(self, tier: Tier) -> str:
        """Social-proof line for a tier, or the default line for tiers without one."""
        proof = self._raw.get("social_proof") or {}
        tiers = proof.get("tiers", _FALLBACK_SOCIAL_PROOF["tiers"])
        default = proof.get("default", _FALLBACK_SOCIAL_PROOF["default"])
        return tiers.get(tier.value, default)


def _to_decimal(value: Any) -> Decimal:
    # str() first so YAML floats such as 29.9 keep their printed value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid price in upgrade settings: {value!r}")


def get_upgrade_settings_loader(
    config_path: Optional[str] = None,
) -> UpgradeSettingsLoader:
    """Return the singleton UpgradeSettingsLoader."""
    return UpgradeSettingsLoader(config_path)


def reset_upgrade_settings_loader() -> None:
    """Reset singleton (for tests only)."""
    UpgradeSettingsLoader._instance = None
