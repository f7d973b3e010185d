"""
Upgrade prompt model.

Rows are append-only: a prompt is written when shown and never updated.
"""

from sqlalchemy import Column, String, DateTime, JSON, Enum, func

from vangarments.models.base import Base, generate_uuid


class UpgradePromptRecord(Base):
    """An upgrade prompt shown to a user, kept for analytics and dedup."""

    __tablename__ = "upgrade_prompts"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )

    user_id = Column(
        String(255),
        nullable=False,
        index=True,
    )

    prompt_type = Column(
        Enum(
            "usage_limit", "feature_discovery",
            name="upgrade_prompt_type",
            native_enum=False,
        ),
        nullable=False,
    )

    feature_context = Column(
        String(100),
        nullable=True,
        comment="Feature key the prompt is about"
    )

    prompt_content = Column(
        JSON,
        nullable=False,
        comment="title, message, benefits, cta_text, urgency, social_proof"
    )

    shown_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<UpgradePromptRecord(id={self.id}, user_id={self.user_id}, "
            f"type={self.prompt_type}, feature={self.feature_context})>"
        )
