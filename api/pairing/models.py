import uuid

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Index, Integer, String, UniqueConstraint, func

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Member(Base):
    __tablename__ = "member"

    id = Column(String(64), primary_key=True, default=_uuid)
    username = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_active_at = Column(DateTime(timezone=True), nullable=True)
    flake_streak = Column(Integer, nullable=False, default=0)
    blocked_ids = Column(JSON, nullable=False, default=list)
    global_feed_opt_in = Column(Boolean, nullable=False, default=True)
    priority_next_pairing = Column(Boolean, nullable=False, default=False)
    waitlisted_on = Column(Date, nullable=True)
    waitlisted_at = Column(DateTime(timezone=True), nullable=True)


class Pairing(Base):
    __tablename__ = "pairing"

    id = Column(String(64), primary_key=True, default=_uuid)
    pairing_date = Column(Date, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    member_a = Column(String(64), nullable=False)
    member_b = Column(String(64), nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    photo_a = Column(String, nullable=True)
    photo_b = Column(String, nullable=True)
    submitted_at_a = Column(DateTime(timezone=True), nullable=True)
    submitted_at_b = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    is_artificial_completion = Column(Boolean, nullable=False, default=False)
    artificial_completion_reason = Column(String, nullable=True)
    is_private = Column(Boolean, nullable=False, default=False)
    companion_conversation_id = Column(String(64), nullable=False)
    last_reminder_at = Column(DateTime(timezone=True), nullable=True)
    last_reminder_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_pairing_date", "pairing_date"),
        Index("idx_pairing_status_expires", "status", "expires_at"),
        Index("idx_pairing_member_a", "member_a"),
        Index("idx_pairing_member_b", "member_b"),
    )


class ChatThread(Base):
    __tablename__ = "chat_thread"

    id = Column(String(64), primary_key=True, default=_uuid)
    pairing_id = Column(String(64), nullable=False, unique=True)
    pairing_date = Column(Date, nullable=False)
    participant_a_id = Column(String(64), nullable=False)
    participant_b_id = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PairingEvent(Base):
    __tablename__ = "pairing_event"

    id = Column(String(64), primary_key=True, default=_uuid)
    pairing_id = Column(String(64), nullable=True)
    member_id = Column(String(64), nullable=True)
    pairing_date = Column(Date, nullable=True)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_pairing_event_date", "pairing_date"),
        Index("idx_pairing_event_pairing", "pairing_id"),
    )


class NotificationOutbox(Base):
    __tablename__ = "notification_outbox"

    id = Column(String(64), primary_key=True, default=_uuid)
    member_id = Column(String(64), nullable=False)
    template_key = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    idempotency_key = Column(String, nullable=False, unique=True)
    status = Column(String(16), nullable=False, default="queued")
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class FeedEntry(Base):
    __tablename__ = "feed_entry"

    id = Column(String(64), primary_key=True, default=_uuid)
    pairing_id = Column(String(64), nullable=False)
    audience = Column(String, nullable=False)
    pairing_date = Column(Date, nullable=False)
    member_a = Column(String(64), nullable=False)
    member_b = Column(String(64), nullable=False)
    username_a = Column(String, nullable=True)
    username_b = Column(String, nullable=True)
    photo_a = Column(String, nullable=True)
    photo_b = Column(String, nullable=True)
    is_artificial_completion = Column(Boolean, nullable=False, default=False)
    artificial_completion_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("pairing_id", "audience", name="uq_feed_entry_audience"),
        Index("idx_feed_entry_audience", "audience"),
    )
