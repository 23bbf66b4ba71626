from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, JSON
from datetime import datetime
from leadcrm.core.database import Base

DEFAULT_LEAD_STATUSES = ["חדש", "בטיפול", "נוצר קשר", "מתעניין", "לא מעוניין", "הומר ללקוח"]
DEFAULT_CUSTOMER_STATUSES = ["פעיל", "לא פעיל", "VIP"]
DEFAULT_PAYMENT_STATUSES = ["שולם", "ממתין לתשלום", "באיחור"]


class SystemClient(Base):
    """A tenant: branding and status vocabulary shared by a manager and their agents."""
    __tablename__ = "system_clients"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    company_name = Column(String)

    # Branding
    primary_color = Column(String, default="#3b82f6")
    secondary_color = Column(String, default="#64748b")
    logo_url = Column(String)

    # Vocabulary
    lead_statuses = Column(JSON, default=lambda: list(DEFAULT_LEAD_STATUSES))
    customer_statuses = Column(JSON, default=lambda: list(DEFAULT_CUSTOMER_STATUSES))
    payment_statuses = Column(JSON, default=lambda: list(DEFAULT_PAYMENT_STATUSES))
    features = Column(JSON, default=dict)
    message_templates = Column(JSON, default=dict)

    is_active = Column(Boolean, default=True)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(TIMESTAMP, nullable=True)
