"""
Root test configuration and fixtures.

Provides:
- In-memory fakes for the entitlement collaborators
- Service fixtures wired with those fakes
- SQLite in-memory database fixtures for repository tests
- YAML config fixtures for the settings loader
"""

import os
import tempfile
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest
import yaml
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from vangarments.config.upgrade_settings import (
    get_upgrade_settings_loader,
    reset_upgrade_settings_loader,
)
from vangarments.entitlements.audit import reset_audit_logger
from vangarments.entitlements.interfaces import (
    SubscriptionLookup,
    UpgradePromptStore,
    UsageSnapshotProvider,
)
from vangarments.entitlements.models import (
    NewUpgradePrompt,
    SubscriptionFeatures,
    SubscriptionRecord,
    SubscriptionStatus,
    Tier,
    UpgradePrompt,
    UsageSnapshot,
)
from vangarments.entitlements.service import FeatureAccessService
from vangarments.services.upgrade_system import UpgradeSystemService

# Set test environment
os.environ.setdefault("ENV", "test")

REPO_ROOT = Path(__file__).resolve().parents[3]
SETTINGS_PATH = REPO_ROOT / "config" / "upgrade_settings.yml"

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# In-memory collaborators
# =============================================================================

class InMemorySubscriptions(SubscriptionLookup):
    """Subscription lookup backed by a dict of user_id -> record."""

    def __init__(self):
        self.records: Dict[str, SubscriptionRecord] = {}
        self.calls: List[str] = []

    def set(self, record: SubscriptionRecord) -> None:
        self.records[record.user_id] = record

    def get_user_active_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        self.calls.append(user_id)
        record = self.records.get(user_id)
        if record is None or not record.is_active:
            return None
        return record


class InMemoryUsage(UsageSnapshotProvider):
    """Usage provider backed by a dict of user_id -> snapshot."""

    def __init__(self):
        self.snapshots: Dict[str, UsageSnapshot] = {}
        self.calls: List[str] = []

    def set(self, user_id: str, **counters) -> None:
        self.snapshots[user_id] = UsageSnapshot(**counters)

    def get_user_feature_usage(self, user_id: str) -> UsageSnapshot:
        self.calls.append(user_id)
        return self.snapshots.get(user_id, UsageSnapshot())


class InMemoryPromptStore(UpgradePromptStore):
    """Prompt store that keeps saved prompts in a list."""

    def __init__(self):
        self.saved: List[UpgradePrompt] = []

    def save_upgrade_prompt(self, prompt: NewUpgradePrompt) -> UpgradePrompt:
        saved = UpgradePrompt(
            id=str(uuid.uuid4()),
            user_id=prompt.user_id,
            prompt_type=prompt.prompt_type,
            feature_context=prompt.feature_context,
            prompt_content=prompt.prompt_content,
            shown_at=FIXED_NOW,
        )
        self.saved.append(saved)
        return saved

    def list_for_user(self, user_id: str, limit: int = 50) -> List[UpgradePrompt]:
        mine = [p for p in reversed(self.saved) if p.user_id == user_id]
        return mine[:limit]


def make_subscription(
    user_id: str,
    tier: Tier,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    **flags,
) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        subscription_type=tier,
        features=SubscriptionFeatures(**flags),
        status=status,
        amount=Decimal("0") if tier == Tier.FREE else Decimal("29.90"),
    )


# =============================================================================
# Service fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def _reset_singletons():
    """Settings loader and audit logger are process singletons."""
    reset_upgrade_settings_loader()
    reset_audit_logger()
    yield
    reset_upgrade_settings_loader()
    reset_audit_logger()


@pytest.fixture
def subscriptions() -> InMemorySubscriptions:
    return InMemorySubscriptions()


@pytest.fixture
def usage() -> InMemoryUsage:
    return InMemoryUsage()


@pytest.fixture
def prompt_store() -> InMemoryPromptStore:
    return InMemoryPromptStore()


@pytest.fixture
def upgrade_settings():
    """Settings loader reading the repository's config/upgrade_settings.yml."""
    return get_upgrade_settings_loader(str(SETTINGS_PATH))


@pytest.fixture
def feature_access(subscriptions, usage) -> FeatureAccessService:
    return FeatureAccessService(subscriptions, usage)


@pytest.fixture
def upgrade_service(subscriptions, feature_access, prompt_store, upgrade_settings) -> UpgradeSystemService:
    return UpgradeSystemService(
        subscriptions=subscriptions,
        feature_access=feature_access,
        prompt_store=prompt_store,
        pricing=upgrade_settings,
        settings=upgrade_settings,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def free_user(subscriptions) -> str:
    """A user with no subscription row at all."""
    return "user_free"


@pytest.fixture
def premium_user(subscriptions) -> str:
    subscriptions.set(make_subscription("user_premium", Tier.PREMIUM))
    return "user_premium"


@pytest.fixture
def enterprise_user(subscriptions) -> str:
    subscriptions.set(make_subscription("user_enterprise", Tier.ENTERPRISE))
    return "user_enterprise"


# =============================================================================
# Database fixtures
# =============================================================================

# Tables owned by other modules; only the columns the usage counts read.
_USAGE_TABLES_DDL = [
    "CREATE TABLE vufs_catalog (id TEXT PRIMARY KEY, created_by TEXT NOT NULL, created_at TIMESTAMP NOT NULL)",
    "CREATE TABLE outfits (id TEXT PRIMARY KEY, user_id TEXT NOT NULL)",
    "CREATE TABLE user_follows (id TEXT PRIMARY KEY, follower_id TEXT NOT NULL, following_id TEXT NOT NULL)",
    "CREATE TABLE marketplace_listings (id TEXT PRIMARY KEY, seller_id TEXT NOT NULL, status TEXT NOT NULL)",
]


@pytest.fixture
def db_engine():
    """Fresh SQLite in-memory engine with every table the repositories touch."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    from vangarments.db_base import Base
    from vangarments import models  # noqa: F401 - registers tables

    Base.metadata.create_all(bind=engine)
    with engine.begin() as conn:
        for ddl in _USAGE_TABLES_DDL:
            conn.execute(text(ddl))

    yield engine

    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    """Session on a per-test database; repositories may commit freely."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()

    yield session

    session.close()


# =============================================================================
# Config fixtures
# =============================================================================

@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for YAML config files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_yaml_config(temp_config_dir):
    """
    Factory fixture that writes a YAML config file and returns its path.

    Usage:
        config_path = make_yaml_config("upgrade_settings.yml", {"discount": {...}})
    """
    def _make(filename: str, config: dict) -> Path:
        config_path = temp_config_dir / filename
        with open(config_path, "w") as f:
            yaml.dump(config, f)
        return config_path
    return _make
