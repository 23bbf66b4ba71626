from sqlalchemy import Column, Integer, String, Text, Date, Time, TIMESTAMP, ForeignKey
from datetime import datetime
from leadcrm.core.database import Base


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    phone = Column(String)
    email = Column(String)

    status = Column(String, default="חדש") # free-form, localized label
    source = Column(String, default="manual")
    notes = Column(Text)

    # Callback (organisation local time)
    callback_date = Column(Date, nullable=True)
    callback_time = Column(Time, nullable=True)

    # Ownership
    assigned_to = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    client_id = Column(Integer, ForeignKey("system_clients.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def has_callback(self):
        return self.callback_date is not None and self.callback_time is not None
