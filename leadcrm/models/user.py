from sqlalchemy import Column, Integer, String, Boolean, Text, TIMESTAMP, ForeignKey
from datetime import datetime
from leadcrm.core.database import Base

ROLES = ("admin", "manager", "agent")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    first_name = Column(String)
    last_name = Column(String)
    phone = Column(String)
    avatar = Column(Text)

    role = Column(String, default="agent", nullable=False) # 'admin', 'manager', 'agent'

    # Tenant + hierarchy (agents report to a manager)
    client_id = Column(Integer, ForeignKey("system_clients.id", ondelete="SET NULL"), nullable=True, index=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    is_active = Column(Boolean, default=True)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(TIMESTAMP)
    deleted_at = Column(TIMESTAMP, nullable=True, index=True) # soft delete

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p)
