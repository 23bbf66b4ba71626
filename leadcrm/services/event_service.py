import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leadcrm.core.errors import ConflictError, NotFoundError, ValidationError
from leadcrm.models.unified_event import UnifiedEvent, EVENT_TYPES, REMINDER
from leadcrm.schemas.event import EventCreate, EventUpdate
from leadcrm.services.timezone import format_utc, parse_instant

logger = logging.getLogger(__name__)

# camelCase payload key -> column
FIELD_MAP = {
    "title": "title",
    "description": "description",
    "eventType": "event_type",
    "startTime": "start_time",
    "endTime": "end_time",
    "advanceNotice": "advance_notice",
    "isActive": "is_active",
    "notified": "notified",
    "customerId": "customer_id",
    "customerName": "customer_name",
    "leadId": "lead_id",
    "taskId": "task_id",
}


def serialize_event(event: UnifiedEvent) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "eventType": event.event_type,
        "startTime": format_utc(event.start_time),
        "endTime": format_utc(event.end_time),
        "advanceNotice": event.advance_notice,
        "isActive": event.is_active,
        "notified": event.notified,
        "customerId": event.customer_id,
        "customerName": event.customer_name,
        "leadId": event.lead_id,
        "taskId": event.task_id,
        "createdBy": event.created_by,
        "createdAt": format_utc(event.created_at),
        "updatedAt": format_utc(event.updated_at),
    }


class EventService:
    """Calendar events, always scoped to the user who owns them."""

    def __init__(self, db: Session):
        self.db = db

    def _owned(self, user_id: int):
        return self.db.query(UnifiedEvent).filter(UnifiedEvent.created_by == user_id)

    def get(self, event_id: int, user_id: int) -> UnifiedEvent:
        event = self._owned(user_id).filter(UnifiedEvent.id == event_id).first()
        if not event:
            raise NotFoundError("Event not found")
        return event

    def list_events(
        self,
        user_id: int,
        event_type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[UnifiedEvent]:
        query = self._owned(user_id)
        if event_type:
            query = query.filter(UnifiedEvent.event_type == event_type)
        elif start_date and end_date:
            try:
                start, end = parse_instant(start_date), parse_instant(end_date)
            except ValueError:
                raise ValidationError("Invalid date range")
            query = query.filter(UnifiedEvent.start_time >= start, UnifiedEvent.start_time <= end)
        return query.order_by(UnifiedEvent.start_time.asc()).all()

    def pending_notifications(self, user_id: int) -> List[UnifiedEvent]:
        return (
            self._owned(user_id)
            .filter(
                UnifiedEvent.event_type == REMINDER,
                UnifiedEvent.is_active.is_(True),
                UnifiedEvent.notified.is_(False),
                UnifiedEvent.advance_notice > 0,
            )
            .order_by(UnifiedEvent.start_time.asc())
            .all()
        )

    def _check(self, event_type: Optional[str], start: Optional[datetime], end: Optional[datetime]):
        if event_type is not None and event_type not in EVENT_TYPES:
            raise ValidationError(f"Invalid event type, expected one of: {', '.join(EVENT_TYPES)}")
        if start is not None and end is not None and end < start:
            raise ValidationError("End time must be after start time")

    def _commit(self):
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("This lead already has a reminder event")

    def create(self, data: EventCreate, user_id: int) -> UnifiedEvent:
        if not data.title.strip():
            raise ValidationError("Title is required")
        start, end = parse_instant(data.startTime), parse_instant(data.endTime)
        self._check(data.eventType, start, end)

        event = UnifiedEvent(
            title=data.title.strip(),
            description=data.description,
            event_type=data.eventType,
            start_time=start,
            end_time=end,
            advance_notice=data.advanceNotice,
            is_active=data.isActive,
            notified=data.notified,
            customer_id=data.customerId,
            customer_name=data.customerName,
            lead_id=data.leadId,
            task_id=data.taskId,
            created_by=user_id,
        )
        self.db.add(event)
        self._commit()
        self.db.refresh(event)
        logger.info(f"📅 Event {event.id} ({event.event_type}) created by user {user_id}")
        return event

    def update(self, event_id: int, data: EventUpdate, user_id: int) -> UnifiedEvent:
        event = self.get(event_id, user_id)
        changes = data.model_dump(exclude_unset=True)

        for key in ("startTime", "endTime"):
            if changes.get(key) is not None:
                changes[key] = parse_instant(changes[key])
        self._check(
            changes.get("eventType"),
            changes.get("startTime", event.start_time),
            changes.get("endTime", event.end_time),
        )

        for key, value in changes.items():
            if value is None and key in ("title", "eventType", "startTime", "endTime"):
                continue
            setattr(event, FIELD_MAP[key], value)

        self._commit()
        self.db.refresh(event)
        return event

    def delete(self, event_id: int, user_id: int):
        event = self.get(event_id, user_id)
        self.db.delete(event)
        self.db.commit()

    def mark_notified(self, event_id: int, user_id: int) -> UnifiedEvent:
        event = self.get(event_id, user_id)
        event.notified = True
        self.db.commit()
        self.db.refresh(event)
        return event
