from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.security import require_roles
from leadcrm.models.user import User
from leadcrm.schemas.whatsapp import WhatsAppConnectionOut, WhatsAppCredentials, WhatsAppSend
from leadcrm.services.whatsapp_service import WhatsAppService

router = APIRouter(prefix="/api/whatsapp", tags=["WhatsApp"])


def connection_out(connection) -> dict:
    return WhatsAppConnectionOut(
        id=connection.id,
        phone_number_id=connection.wa_phone_number_id,
        business_account_id=connection.wa_business_account_id,
        is_active=connection.is_active,
        last_used_at=connection.last_used_at,
        created_at=connection.created_at,
    ).model_dump(mode="json")


@router.post("/connect")
def connect(
    payload: WhatsAppCredentials,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("manager")),
):
    connection = WhatsAppService(db).connect(current_user, payload)
    return {"success": True, "connection": connection_out(connection)}


@router.put("/update")
def update(
    payload: WhatsAppCredentials,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("manager")),
):
    connection = WhatsAppService(db).update(current_user, payload)
    return {"success": True, "connection": connection_out(connection)}


@router.delete("/disconnect")
def disconnect(db: Session = Depends(get_db), current_user: User = Depends(require_roles("manager"))):
    WhatsAppService(db).disconnect(current_user)
    return {"success": True, "message": "WhatsApp disconnected"}


@router.get("/status")
def status(db: Session = Depends(get_db), current_user: User = Depends(require_roles("manager", "agent"))):
    connection = WhatsAppService(db).find_for_user(current_user)
    if not connection:
        return {"connected": False, "connection": None}
    return {"connected": True, "connection": connection_out(connection)}


@router.post("/send")
def send(
    payload: WhatsAppSend,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("manager", "agent")),
):
    return WhatsAppService(db).send(current_user, payload.phone_numbers, payload.message)
