from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.errors import AuthorizationError
from leadcrm.core.security import get_current_user, require_roles
from leadcrm.models.user import User
from leadcrm.schemas.user import UserCreate, UserResponse, UserUpdate
from leadcrm.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["Users"])


def user_out(user) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


# =========================================================
# 1. LISTS
# =========================================================

@router.get("")
def list_users(
    role: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    users = UserService(db).list_users(current_user, role=role, client_id=client_id)
    return {"users": [user_out(u) for u in users], "total": len(users)}


@router.get("/agents/by-manager")
def agents_by_manager(
    manager_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin", "manager")),
):
    if current_user.role == "manager":
        manager_id = current_user.id
    elif manager_id is None:
        manager_id = current_user.id
    agents = UserService(db).agents_of(manager_id)
    return {"agents": [user_out(a) for a in agents]}


@router.get("/deleted")
def deleted_users(db: Session = Depends(get_db), current_user: User = Depends(require_roles("admin"))):
    service = UserService(db)
    return {
        "users": [user_out(u) | {"deleted_at": u.deleted_at.isoformat()} for u in service.deleted_users()],
        "pending_purge": service.pending_deletion_count(),
    }


@router.post("/cleanup-deleted")
def cleanup_deleted(db: Session = Depends(get_db), current_user: User = Depends(require_roles("admin"))):
    return UserService(db).purge_deleted()


# =========================================================
# 2. SINGLE USER
# =========================================================

@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"user": user_out(UserService(db).get_visible(user_id, current_user))}


@router.post("", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if current_user.role == "agent":
        raise AuthorizationError("Agents cannot create users")
    return {"user": user_out(UserService(db).create(payload, current_user))}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"user": user_out(UserService(db).update(user_id, payload, current_user))}


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    UserService(db).soft_delete(user_id, current_user)
    return {"message": "User deleted successfully"}
