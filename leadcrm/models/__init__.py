from .system_client import SystemClient
from .user import User
from .customer import Customer
from .lead import Lead
from .task import Task
from .unified_event import UnifiedEvent
from .attendance import AttendanceRecord
from .whatsapp_connection import WhatsAppConnection

__all__ = [
    "SystemClient",
    "User",
    "Customer",
    "Lead",
    "Task",
    "UnifiedEvent",
    "AttendanceRecord",
    "WhatsAppConnection",
]
