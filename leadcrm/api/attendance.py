from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.errors import AuthorizationError
from leadcrm.core.security import get_current_user, require_roles
from leadcrm.models.user import User
from leadcrm.schemas.attendance import AttendanceResponse, AttendanceSummary, AttendanceUpdate, ClockRequest
from leadcrm.services import permissions
from leadcrm.services.attendance_service import AttendanceService

router = APIRouter(prefix="/api/attendance", tags=["Attendance"])


def record_out(record) -> dict:
    return AttendanceResponse.model_validate(record).model_dump(mode="json")


# ---------------------------------------------------------
# CLOCK
# ---------------------------------------------------------
@router.post("/clock-in", status_code=201)
def clock_in(
    payload: Optional[ClockRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = AttendanceService(db).clock_in(current_user.id, payload.notes if payload else None)
    return {"record": record_out(record), "message": "Clocked in successfully"}


@router.patch("/clock-out")
def clock_out(
    payload: Optional[ClockRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = AttendanceService(db).clock_out(current_user.id, payload.notes if payload else None)
    return {"record": record_out(record), "message": "Clocked out successfully"}


@router.get("/today/current")
def today(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    service = AttendanceService(db)
    records = service.today(current_user.id)
    return {
        "records": [record_out(r) for r in records],
        "is_clocked_in": service.open_record(current_user.id) is not None,
    }


# ---------------------------------------------------------
# RECORDS
# ---------------------------------------------------------
@router.get("")
def list_records(
    user_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    records = AttendanceService(db).list_records(
        current_user, user_id=user_id, start_date=start_date, end_date=end_date, limit=limit, offset=offset
    )
    return {"records": [record_out(r) for r in records]}


@router.get("/summary/{user_id}/{year}/{month}", response_model=AttendanceSummary)
def monthly_summary(
    user_id: int,
    year: int,
    month: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role == "agent" and not permissions.same_id(user_id, current_user.id):
        raise AuthorizationError("Access denied")
    return AttendanceService(db).monthly_summary(user_id, year, month)


@router.get("/{record_id}")
def get_record(record_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"record": record_out(AttendanceService(db).get(record_id, current_user))}


@router.put("/{record_id}")
def update_record(
    record_id: int,
    payload: AttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = AttendanceService(db).update(record_id, payload.model_dump(exclude_unset=True), current_user)
    return {"record": record_out(record)}


@router.delete("/{record_id}")
def delete_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin", "manager")),
):
    AttendanceService(db).delete(record_id, current_user)
    return {"message": "Attendance record deleted"}
