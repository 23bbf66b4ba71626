from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.security import get_current_user
from leadcrm.models.user import User
from leadcrm.schemas.event import EventCreate, EventUpdate
from leadcrm.services.event_service import EventService, serialize_event

router = APIRouter(prefix="/api/unified-events", tags=["Calendar"])


@router.get("")
def list_events(
    type: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    events = EventService(db).list_events(current_user.id, type, start_date, end_date)
    return {"events": [serialize_event(e) for e in events]}


@router.get("/notifications")
def pending_notifications(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    events = EventService(db).pending_notifications(current_user.id)
    return {"events": [serialize_event(e) for e in events]}


@router.get("/{event_id}")
def get_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"event": serialize_event(EventService(db).get(event_id, current_user.id))}


@router.post("", status_code=201)
def create_event(payload: EventCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"event": serialize_event(EventService(db).create(payload, current_user.id))}


@router.put("/{event_id}")
def update_event(
    event_id: int,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"event": serialize_event(EventService(db).update(event_id, payload, current_user.id))}


@router.delete("/{event_id}")
def delete_event(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    EventService(db).delete(event_id, current_user.id)
    return {"message": "Event deleted successfully"}


@router.patch("/{event_id}/notified")
def mark_notified(event_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"event": serialize_event(EventService(db).mark_notified(event_id, current_user.id))}
