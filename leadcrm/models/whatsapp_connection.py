from sqlalchemy import Column, Integer, String, Text, Boolean, TIMESTAMP, ForeignKey
from datetime import datetime
from leadcrm.core.database import Base


class WhatsAppConnection(Base):
    __tablename__ = "whatsapp_connections"

    id = Column(Integer, primary_key=True, index=True)

    manager_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    # Meta Cloud API credentials
    wa_access_token = Column(Text, nullable=False)
    wa_phone_number_id = Column(String, nullable=False)
    wa_business_account_id = Column(String)
    wa_app_id = Column(String)
    wa_webhook_verify_token = Column(String)

    is_active = Column(Boolean, default=True)
    last_used_at = Column(TIMESTAMP)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)
