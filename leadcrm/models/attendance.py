from sqlalchemy import Column, Integer, Date, Float, Text, TIMESTAMP, ForeignKey
from datetime import datetime
from leadcrm.core.database import Base


class AttendanceRecord(Base):
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    clock_in = Column(TIMESTAMP, nullable=False)
    clock_out = Column(TIMESTAMP, nullable=True) # open session while NULL
    total_hours = Column(Float, nullable=True)

    notes = Column(Text)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)
