from sqlalchemy import Column, Integer, String, Text, Boolean, TIMESTAMP, ForeignKey, Index, text
from datetime import datetime
from leadcrm.core.database import Base

EVENT_TYPES = ("reminder", "meeting", "lead", "task")
REMINDER = "reminder"


class UnifiedEvent(Base):
    __tablename__ = "unified_events"
    __table_args__ = (
        # At most one reminder per lead. Other event types may repeat.
        Index(
            "uq_unified_events_lead_reminder",
            "lead_id",
            unique=True,
            postgresql_where=text("event_type = 'reminder'"),
            sqlite_where=text("event_type = 'reminder'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String, nullable=False)
    description = Column(Text)
    event_type = Column(String, nullable=False, index=True)

    # Absolute instants, stored as naive UTC
    start_time = Column(TIMESTAMP, nullable=False, index=True)
    end_time = Column(TIMESTAMP, nullable=False)

    advance_notice = Column(Integer, default=15) # minutes
    is_active = Column(Boolean, default=True)
    notified = Column(Boolean, default=False)

    customer_name = Column(String)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="SET NULL"), nullable=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)
