import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leadcrm.core.config import settings
from leadcrm.models.lead import Lead
from leadcrm.models.unified_event import UnifiedEvent, REMINDER
from leadcrm.services.timezone import callback_window

logger = logging.getLogger(__name__)

TITLE_TEMPLATE = "שיחה חוזרת - {name}"
DESCRIPTION_TEMPLATE = "שיחה חוזרת עם {name} ({phone})"


def build_reminder_text(lead: Lead):
    title = TITLE_TEMPLATE.format(name=lead.name)
    description = DESCRIPTION_TEMPLATE.format(name=lead.name, phone=lead.phone or "")
    if lead.notes:
        description += f" - {lead.notes}"
    return title, description


class CallbackSync:
    """
    Keeps a lead's callback (date + time) and its single reminder event in step.

    Every public entry point is best-effort: failures are logged, the session is
    rolled back and nothing is raised, so the lead write that triggered the sync
    stands on its own. The lead must already be committed when these run.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------------------------------------------------------
    # LOOKUP
    # ---------------------------------------------------------
    def find_reminder(self, lead_id: int) -> Optional[UnifiedEvent]:
        # Global by lead id so a reassigned lead still finds its reminder
        return (
            self.db.query(UnifiedEvent)
            .filter(UnifiedEvent.lead_id == lead_id, UnifiedEvent.event_type == REMINDER)
            .first()
        )

    # ---------------------------------------------------------
    # LIFECYCLE HOOKS
    # ---------------------------------------------------------
    def on_lead_create(self, lead: Lead, user_id: int) -> Optional[UnifiedEvent]:
        if not lead.has_callback:
            return None
        try:
            return self._upsert(lead, user_id, settings.REMINDER_ADVANCE_NOTICE)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Reminder creation failed for lead {lead.id}: {e}")
            return None

    def on_lead_update(self, lead: Lead, user_id: int, callback_touched: bool) -> Optional[UnifiedEvent]:
        """
        `callback_touched` is True only when the request body carried a callback
        date or time key. Omitted keys leave the reminder alone.
        """
        if not callback_touched:
            return None
        try:
            if lead.has_callback:
                return self._upsert(lead, user_id, settings.REMINDER_ADVANCE_NOTICE)

            existing = self.find_reminder(lead.id)
            if existing:
                self.db.delete(existing)
                self.db.commit()
                logger.info(f"🗑️ Reminder {existing.id} removed, lead {lead.id} callback cleared")
            return None
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Reminder sync failed for lead {lead.id}: {e}")
            return None

    def on_bulk_import(self, leads: Iterable[Lead], user_id: int) -> int:
        created = 0
        for lead in leads:
            if not lead.has_callback:
                continue
            try:
                self._upsert(lead, user_id, settings.IMPORT_ADVANCE_NOTICE)
                created += 1
            except Exception as e:
                self.db.rollback()
                logger.warning(f"⚠️ Reminder for imported lead {lead.id} skipped: {e}")
        return created

    def on_lead_delete(self, lead_id: int) -> int:
        """Removes the lead's reminders. Runs inside the caller's transaction."""
        return (
            self.db.query(UnifiedEvent)
            .filter(UnifiedEvent.lead_id == lead_id, UnifiedEvent.event_type == REMINDER)
            .delete(synchronize_session=False)
        )

    def backfill_missing(self) -> int:
        """Creates reminders for leads whose callback never got one."""
        has_reminder = select(UnifiedEvent.lead_id).where(
            UnifiedEvent.event_type == REMINDER, UnifiedEvent.lead_id.isnot(None)
        )
        leads = (
            self.db.query(Lead)
            .filter(
                Lead.callback_date.isnot(None),
                Lead.callback_time.isnot(None),
                ~Lead.id.in_(has_reminder),
            )
            .all()
        )

        created = 0
        for lead in leads:
            owner = lead.assigned_to or lead.created_by
            if owner is None:
                continue
            if self.on_lead_create(lead, owner):
                created += 1
        return created

    # ---------------------------------------------------------
    # INTERNALS
    # ---------------------------------------------------------
    def _apply(self, event: UnifiedEvent, lead: Lead):
        start, end = callback_window(lead.callback_date, lead.callback_time)
        title, description = build_reminder_text(lead)

        if event.start_time != start:
            event.notified = False
        event.title = title
        event.description = description
        event.start_time = start
        event.end_time = end
        event.customer_name = lead.name
        event.is_active = True

    def _upsert(self, lead: Lead, user_id: int, advance_notice: int) -> UnifiedEvent:
        existing = self.find_reminder(lead.id)
        if existing:
            self._apply(existing, lead)
            self.db.commit()
            logger.info(f"🔄 Reminder {existing.id} updated for lead {lead.id}")
            return existing

        event = UnifiedEvent(
            event_type=REMINDER,
            lead_id=lead.id,
            advance_notice=advance_notice,
            notified=False,
            is_active=True,
            created_by=user_id,
        )
        self._apply(event, lead)
        self.db.add(event)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the reminder first
            self.db.rollback()
            existing = self.find_reminder(lead.id)
            if not existing:
                raise
            self._apply(existing, lead)
            self.db.commit()
            logger.info(f"🔄 Reminder {existing.id} updated for lead {lead.id} after insert race")
            return existing

        self.db.refresh(event)
        logger.info(f"✅ Reminder {event.id} created for lead {lead.id}")
        return event
