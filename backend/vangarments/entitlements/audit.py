"""
Entitlement audit trail for gated routes.

Provides:
- AccessDenialEvent: one 402 served by require_feature()
- EntitlementAuditLogger: writes events to the "entitlements.audit" logger,
  collapsing repeats of the same user/feature pair within a time window

The evaluator itself only logs denials at INFO; the audit trail records
denials that actually blocked a request.
"""

import json
import logging
import uuid
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

AUDIT_LOGGER_NAME = "entitlements.audit"
audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

DEFAULT_WINDOW_SECONDS = 60


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AccessDenialEvent:
    user_id: str
    feature_name: str
    tier: str
    reason: Optional[str] = None
    upgrade_required: Optional[str] = None
    endpoint: Optional[str] = None
    method: Optional[str] = None
    timestamp: str = field(default_factory=lambda: _now().isoformat())
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    extra_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def dedup_key(self) -> Tuple[str, str]:
        return (self.user_id, self.feature_name)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class EntitlementAuditLogger:
    """
    Process-wide audit writer.

    A client retrying a blocked request would otherwise flood the trail, so
    the first denial per (user, feature) inside the window is written and
    the rest are dropped.

    Usage:
        get_audit_logger().log_denial(AccessDenialEvent(
            user_id="user_123",
            feature_name="marketplace_trading",
            tier="free",
        ))
    """

    _instance: Optional["EntitlementAuditLogger"] = None
    _lock = Lock()

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, window_seconds: int = DEFAULT_WINDOW_SECONDS):
        if self._initialized:
            return

        self._window_seconds = window_seconds
        self._last_written: Dict[Tuple[str, str], float] = {}
        self._written_lock = Lock()
        self._initialized = True

    def log_denial(self, event: AccessDenialEvent) -> bool:
        """
        Record a denial.

        Returns:
            False when an identical denial was already written in the window.
        """
        if not self._claim(event.dedup_key):
            logger.debug("Duplicate denial suppressed", extra={
                "user_id": event.user_id,
                "feature_name": event.feature_name,
            })
            return False

        audit_logger.warning(
            "access_denied",
            extra={
                "event_type": "access_denied",
                "audit_data": event.to_dict(),
            },
        )
        return True

    def _claim(self, key: Tuple[str, str]) -> bool:
        now = _now().timestamp()
        with self._written_lock:
            expired = [k for k, t in self._last_written.items() if now - t >= self._window_seconds]
            for k in expired:
                del self._last_written[k]

            if key in self._last_written:
                return False
            self._last_written[key] = now
            return True


def get_audit_logger() -> EntitlementAuditLogger:
    return EntitlementAuditLogger()


def reset_audit_logger() -> None:
    """Drop the singleton (for tests only)."""
    EntitlementAuditLogger._instance = None
