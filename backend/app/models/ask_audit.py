from datetime import datetime, UTC

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from app.db.db import Base


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class AskAuditLog(Base):
    """One row per answered, blocked or calibration-needed question. Holds redacted text only."""
    __tablename__ = "ask_audit_log"
    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String, nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("user_profile.id", ondelete="CASCADE"), nullable=True, index=True)
    question_redacted = Column(Text, nullable=False)
    redaction_types = Column(JSON, nullable=False, default=list)
    question_type = Column(String, nullable=False)
    answer_depth = Column(String, nullable=False)
    outcome = Column(String, nullable=False)
    llm_called = Column(Boolean, nullable=False, default=False)
    answer = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utc_now_naive)


class RateLimit(Base):
    """Fixed-window request counter keyed by (user, bucket)."""
    __tablename__ = "rate_limits"
    __table_args__ = (UniqueConstraint("user_id", "bucket", name="uq_rate_limits_user_bucket"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profile.id", ondelete="CASCADE"), nullable=False)
    bucket = Column(String, nullable=False)
    window_start = Column(DateTime, nullable=False)
    request_count = Column(Integer, nullable=False, default=0)
