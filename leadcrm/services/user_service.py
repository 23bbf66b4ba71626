import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from leadcrm.core.config import settings
from leadcrm.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from leadcrm.core.security import get_password_hash
from leadcrm.models.system_client import SystemClient
from leadcrm.models.user import User, ROLES
from leadcrm.schemas.user import UserCreate, UserUpdate
from leadcrm.services import permissions

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return self.db.query(User).filter(User.deleted_at.is_(None))

    def get(self, user_id: int) -> User:
        user = self._active().filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_visible(self, user_id: int, actor: User) -> User:
        user = self.get(user_id)
        if not permissions.can_view_user(actor, user):
            raise AuthorizationError("Access denied")
        return user

    # ---------------------------------------------------------
    # LISTING
    # ---------------------------------------------------------
    def list_users(self, actor: User, role: Optional[str] = None, client_id: Optional[int] = None) -> List[User]:
        query = self._active()
        if permissions.is_admin(actor):
            if role:
                query = query.filter(User.role == role)
            if client_id is not None:
                query = query.filter(User.client_id == client_id)
        elif permissions.is_manager(actor):
            query = query.filter(
                (User.id == actor.id) | ((User.role == "agent") & (User.manager_id == actor.id))
            )
        else:
            query = query.filter(User.id == actor.id)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()

    def agents_of(self, manager_id: int) -> List[User]:
        return (
            self._active()
            .filter(User.role == "agent", User.manager_id == manager_id)
            .order_by(User.first_name.asc())
            .all()
        )

    def deleted_users(self) -> List[User]:
        return self.db.query(User).filter(User.deleted_at.isnot(None)).order_by(User.deleted_at.desc()).all()

    # ---------------------------------------------------------
    # CREATE
    # ---------------------------------------------------------
    def _provision_client(self, manager: User) -> SystemClient:
        client = SystemClient(
            name=manager.full_name or manager.email,
            company_name=manager.full_name or manager.email,
        )
        self.db.add(client)
        self.db.flush()
        manager.client_id = client.id
        logger.info(f"🏢 System client {client.id} provisioned for manager {manager.email}")
        return client

    def create(self, data: UserCreate, actor: User) -> User:
        if data.role not in ROLES:
            raise ValidationError(f"Invalid role, expected one of: {', '.join(ROLES)}")
        if data.role not in permissions.assignable_roles(actor):
            raise AuthorizationError("Access denied")
        if not data.password or len(data.password) < 6:
            raise ValidationError("Password must be at least 6 characters")
        if self.db.query(User).filter(User.email == data.email).first():
            raise ConflictError("Email already registered")

        manager_id = data.manager_id
        client_id = data.client_id
        if permissions.is_manager(actor):
            # Managers only create agents, inside their own team and tenant
            manager_id = actor.id
            client_id = actor.client_id

        if manager_id is not None:
            manager = self.get(manager_id)
            if manager.role != "manager":
                raise ValidationError("manager_id must reference a manager")
            if client_id is None:
                client_id = manager.client_id

        user = User(
            email=data.email,
            password_hash=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=data.role,
            client_id=client_id,
            manager_id=manager_id if data.role == "agent" else None,
            created_by=actor.id,
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()

        if user.role == "manager" and user.client_id is None:
            self._provision_client(user)

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"✅ User {user.email} ({user.role}) created by {actor.id}")
        return user

    # ---------------------------------------------------------
    # UPDATE / DELETE
    # ---------------------------------------------------------
    def update(self, user_id: int, data: UserUpdate, actor: User) -> User:
        user = self.get(user_id)
        if not permissions.can_manage_user(actor, user):
            raise AuthorizationError("Access denied")

        changes = data.model_dump(exclude_unset=True)

        if changes.get("role") is not None and changes["role"] != user.role:
            if changes["role"] not in ROLES:
                raise ValidationError("Invalid role")
            if changes["role"] not in permissions.assignable_roles(actor):
                raise AuthorizationError("Access denied")
        if not permissions.is_admin(actor):
            # Tenant and hierarchy stay under admin control
            changes.pop("client_id", None)
            if permissions.is_manager(actor) and not permissions.same_id(user.id, actor.id):
                if "manager_id" in changes:
                    changes["manager_id"] = actor.id
            else:
                changes.pop("manager_id", None)
                changes.pop("is_active", None)

        if "email" in changes and changes["email"] != user.email:
            taken = self.db.query(User).filter(User.email == changes["email"], User.id != user.id).first()
            if taken:
                raise ConflictError("Email already registered")

        password = changes.pop("password", None)
        if password:
            if len(password) < 6:
                raise ValidationError("Password must be at least 6 characters")
            user.password_hash = get_password_hash(password)

        for field, value in changes.items():
            if value is None and field in ("email", "role"):
                continue
            setattr(user, field, value)

        self.db.commit()
        self.db.refresh(user)
        return user

    def soft_delete(self, user_id: int, actor: User):
        user = self.get(user_id)
        if permissions.same_id(user.id, actor.id):
            raise ValidationError("You cannot delete your own account")
        if not permissions.can_delete_user(actor, user):
            raise AuthorizationError("Access denied")

        now = datetime.utcnow()
        user.deleted_at = now
        user.is_active = False

        if user.role == "manager" and user.client_id is not None:
            client = self.db.query(SystemClient).filter(SystemClient.id == user.client_id).first()
            if client and client.deleted_at is None:
                client.deleted_at = now
                client.is_active = False

        self.db.commit()
        logger.info(f"🗑️ User {user.id} soft-deleted by {actor.id}")

    # ---------------------------------------------------------
    # MAINTENANCE
    # ---------------------------------------------------------
    def pending_deletion_count(self) -> int:
        cutoff = datetime.utcnow() - timedelta(days=settings.DELETED_RETENTION_DAYS)
        return self.db.query(User).filter(User.deleted_at.isnot(None), User.deleted_at < cutoff).count()

    def purge_deleted(self) -> dict:
        """Hard-deletes users and system clients soft-deleted past the retention window."""
        cutoff = datetime.utcnow() - timedelta(days=settings.DELETED_RETENTION_DAYS)

        users = (
            self.db.query(User)
            .filter(User.deleted_at.isnot(None), User.deleted_at < cutoff)
            .delete(synchronize_session=False)
        )
        clients = (
            self.db.query(SystemClient)
            .filter(SystemClient.deleted_at.isnot(None), SystemClient.deleted_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"🧹 Purged {users} users and {clients} system clients deleted before {cutoff:%Y-%m-%d}")
        return {"users_deleted": users, "clients_deleted": clients}
