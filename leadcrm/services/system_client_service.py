from typing import List, Optional

from sqlalchemy.orm import Session

from leadcrm.core.errors import AuthorizationError, NotFoundError
from leadcrm.models.system_client import SystemClient
from leadcrm.models.user import User
from leadcrm.schemas.system_client import SystemClientUpdate


class SystemClientService:
    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return self.db.query(SystemClient).filter(SystemClient.deleted_at.is_(None))

    def get(self, client_id: int) -> SystemClient:
        client = self._active().filter(SystemClient.id == client_id).first()
        if not client:
            raise NotFoundError("System client not found")
        return client

    def list_clients(self) -> List[SystemClient]:
        return self._active().order_by(SystemClient.name.asc()).all()

    def client_for_user(self, user: User) -> Optional[SystemClient]:
        """Admins have no tenant. Agents use their manager's tenant."""
        if user.role == "admin":
            return None

        client_id = user.client_id
        if user.role == "agent" and user.manager_id:
            manager = self.db.query(User).filter(User.id == user.manager_id).first()
            if manager and manager.client_id:
                client_id = manager.client_id

        if client_id is None:
            return None
        return self._active().filter(SystemClient.id == client_id).first()

    def client_config(self, user: User) -> Optional[dict]:
        client = self.client_for_user(user)
        if not client:
            return None
        return {
            "id": client.id,
            "name": client.name,
            "company_name": client.company_name,
            "primary_color": client.primary_color,
            "secondary_color": client.secondary_color,
            "logo_url": client.logo_url,
            "lead_statuses": client.lead_statuses or [],
            "customer_statuses": client.customer_statuses or [],
            "payment_statuses": client.payment_statuses or [],
            "features": client.features or {},
            "message_templates": client.message_templates or {},
        }

    def update(self, client_id: int, data: SystemClientUpdate, user: User) -> SystemClient:
        client = self.get(client_id)
        if user.role != "admin" and not (user.role == "manager" and user.client_id == client.id):
            raise AuthorizationError("Access denied")

        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "is_active" and user.role != "admin":
                continue
            setattr(client, field, value)
        self.db.commit()
        self.db.refresh(client)
        return client
