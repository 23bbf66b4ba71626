import calendar
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from leadcrm.core.errors import AlreadyClockedIn, AuthorizationError, NoActiveSession, NotFoundError, ValidationError
from leadcrm.models.attendance import AttendanceRecord
from leadcrm.models.user import User
from leadcrm.services import permissions
from leadcrm.services.timezone import parse_instant

logger = logging.getLogger(__name__)


def compute_hours(clock_in: datetime, clock_out: datetime) -> float:
    return round((clock_out - clock_in).total_seconds() / 3600, 2)


class AttendanceService:
    """
    Clock-in/out state machine. A user has at most one open record (no
    clock_out) per day; closing it makes a new clock-in possible again.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------------------------------------------------------
    # STATE MACHINE
    # ---------------------------------------------------------
    def open_record(self, user_id: int, day: Optional[date] = None) -> Optional[AttendanceRecord]:
        day = day or date.today()
        return (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date == day,
                AttendanceRecord.clock_out.is_(None),
            )
            .first()
        )

    def clock_in(self, user_id: int, notes: Optional[str] = None) -> AttendanceRecord:
        if self.open_record(user_id):
            raise AlreadyClockedIn()

        record = AttendanceRecord(
            user_id=user_id,
            date=date.today(),
            clock_in=datetime.utcnow(),
            notes=notes,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"🟢 User {user_id} clocked in (record {record.id})")
        return record

    def clock_out(self, user_id: int, notes: Optional[str] = None) -> AttendanceRecord:
        record = self.open_record(user_id)
        if not record:
            raise NoActiveSession("No active clock-in record found for today")

        record.clock_out = datetime.utcnow()
        record.total_hours = compute_hours(record.clock_in, record.clock_out)
        if notes:
            record.notes = notes
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"🔴 User {user_id} clocked out after {record.total_hours}h")
        return record

    def today(self, user_id: int) -> List[AttendanceRecord]:
        return (
            self.db.query(AttendanceRecord)
            .filter(AttendanceRecord.user_id == user_id, AttendanceRecord.date == date.today())
            .order_by(AttendanceRecord.clock_in.asc())
            .all()
        )

    # ---------------------------------------------------------
    # RECORDS
    # ---------------------------------------------------------
    def _can_see(self, user: User, record: AttendanceRecord) -> bool:
        return user.role in ("admin", "manager") or permissions.same_id(record.user_id, user.id)

    def get(self, record_id: int, user: User) -> AttendanceRecord:
        record = self.db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()
        if not record:
            raise NotFoundError("Attendance record not found")
        if not self._can_see(user, record):
            raise AuthorizationError("Access denied")
        return record

    def list_records(
        self,
        user: User,
        user_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AttendanceRecord]:
        query = self.db.query(AttendanceRecord)
        if user.role in ("admin", "manager"):
            if user_id is not None:
                query = query.filter(AttendanceRecord.user_id == user_id)
        else:
            query = query.filter(AttendanceRecord.user_id == user.id)
        # Inclusive calendar-day bounds
        if start_date is not None:
            query = query.filter(AttendanceRecord.date >= start_date)
        if end_date is not None:
            query = query.filter(AttendanceRecord.date <= end_date)

        return (
            query.order_by(AttendanceRecord.date.desc(), AttendanceRecord.clock_in.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def update(self, record_id: int, changes: dict, user: User) -> AttendanceRecord:
        record = self.get(record_id, user)
        for field in ("clock_in", "clock_out"):
            if changes.get(field) is not None:
                setattr(record, field, parse_instant(changes[field]))
        if "clock_out" in changes and changes["clock_out"] is None:
            record.clock_out = None
        if "notes" in changes:
            record.notes = changes["notes"]

        if record.clock_out is not None:
            if record.clock_out < record.clock_in:
                raise ValidationError("Clock-out must be after clock-in")
            record.total_hours = compute_hours(record.clock_in, record.clock_out)
        else:
            record.total_hours = None

        self.db.commit()
        self.db.refresh(record)
        return record

    def delete(self, record_id: int, user: User):
        record = self.get(record_id, user)
        self.db.delete(record)
        self.db.commit()

    def monthly_summary(self, user_id: int, year: int, month: int) -> dict:
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12")

        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        records = (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date >= first,
                AttendanceRecord.date <= last,
            )
            .all()
        )

        total = round(sum(r.total_hours or 0 for r in records), 2)
        days = len({r.date for r in records if r.clock_out is not None})
        return {
            "user_id": user_id,
            "year": year,
            "month": month,
            "days_worked": days,
            "total_hours": total,
            "average_hours": round(total / days, 2) if days else 0.0,
            "open_sessions": sum(1 for r in records if r.clock_out is None),
        }
