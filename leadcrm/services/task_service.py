import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from leadcrm.core.errors import AuthorizationError, NotFoundError, ValidationError
from leadcrm.models.task import Task
from leadcrm.models.user import User
from leadcrm.schemas.task import TaskCreate, TaskUpdate
from leadcrm.services import permissions

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, db: Session):
        self.db = db

    def _visible(self, user: User):
        query = self.db.query(Task)
        if user.role not in ("admin", "manager"):
            query = query.filter((Task.assigned_to == user.id) | (Task.created_by == user.id))
        return query

    def get(self, task_id: int, user: User) -> Task:
        task = self.db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise NotFoundError("Task not found")
        if not permissions.can_access_task(user, task):
            raise AuthorizationError("Access denied")
        return task

    def list_tasks(
        self,
        user: User,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[int] = None,
    ) -> List[Task]:
        query = self._visible(user)
        if status:
            query = query.filter(Task.status == status)
        if priority:
            query = query.filter(Task.priority == priority)
        if assigned_to is not None:
            query = query.filter(Task.assigned_to == assigned_to)
        return query.order_by(Task.due_date.asc(), Task.created_at.desc()).all()

    def for_lead(self, lead_id: int, user: User) -> List[Task]:
        return self._visible(user).filter(Task.lead_id == lead_id).order_by(Task.due_date.asc()).all()

    def for_customer(self, customer_id: int, user: User) -> List[Task]:
        return self._visible(user).filter(Task.customer_id == customer_id).order_by(Task.due_date.asc()).all()

    def create(self, data: TaskCreate, user: User) -> Task:
        if not data.title.strip():
            raise ValidationError("Title is required")
        if data.assigned_to is not None and not permissions.same_id(data.assigned_to, user.id):
            if not permissions.can_assign_to(self.db, user, data.assigned_to):
                raise AuthorizationError("Cannot assign tasks to this user")

        task = Task(
            title=data.title.strip(),
            description=data.description,
            status=data.status or "ממתין",
            priority=data.priority or "בינוני",
            due_date=data.due_date,
            assigned_to=data.assigned_to or user.id,
            created_by=user.id,
            lead_id=data.lead_id,
            customer_id=data.customer_id,
        )
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        logger.info(f"✅ Task {task.id} created by user {user.id}")
        return task

    def update(self, task_id: int, data: TaskUpdate, user: User) -> Task:
        task = self.get(task_id, user)
        changes = data.model_dump(exclude_unset=True)

        if "assigned_to" in changes and not permissions.same_id(changes["assigned_to"], user.id):
            if not permissions.can_assign_to(self.db, user, changes["assigned_to"]):
                raise AuthorizationError("Cannot assign tasks to this user")
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("Title cannot be empty")

        for field, value in changes.items():
            setattr(task, field, value)
        self.db.commit()
        self.db.refresh(task)
        return task

    def delete(self, task_id: int, user: User):
        task = self.get(task_id, user)
        self.db.delete(task)
        self.db.commit()
