from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime

class ClockRequest(BaseModel):
    notes: Optional[str] = None

class AttendanceUpdate(BaseModel):
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    notes: Optional[str] = None

class AttendanceResponse(BaseModel):
    id: int
    user_id: int
    date: date
    clock_in: datetime
    clock_out: Optional[datetime] = None
    total_hours: Optional[float] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

class AttendanceSummary(BaseModel):
    user_id: int
    year: int
    month: int
    days_worked: int
    total_hours: float
    average_hours: float
    open_sessions: int
