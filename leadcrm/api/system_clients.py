from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.errors import NotFoundError
from leadcrm.core.security import get_current_user, require_roles
from leadcrm.models.user import User
from leadcrm.schemas.system_client import SystemClientResponse, SystemClientUpdate
from leadcrm.services.system_client_service import SystemClientService

router = APIRouter(prefix="/api/system-clients", tags=["System Clients"])


def client_out(client) -> dict:
    return SystemClientResponse.model_validate(client).model_dump(mode="json")


@router.get("")
def list_clients(db: Session = Depends(get_db), current_user: User = Depends(require_roles("admin"))):
    return {"clients": [client_out(c) for c in SystemClientService(db).list_clients()]}


@router.get("/me")
def my_client(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    client = SystemClientService(db).client_for_user(current_user)
    if not client:
        raise NotFoundError("No system client for this user")
    return {"client": client_out(client)}


@router.put("/{client_id}")
def update_client(
    client_id: int,
    payload: SystemClientUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin", "manager")),
):
    return {"client": client_out(SystemClientService(db).update(client_id, payload, current_user))}
