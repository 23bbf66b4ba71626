from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.security import get_current_user
from leadcrm.models.user import User
from leadcrm.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from leadcrm.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def task_out(task) -> dict:
    return TaskResponse.model_validate(task).model_dump(mode="json")


@router.get("")
def list_tasks(
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    assigned_to: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tasks = TaskService(db).list_tasks(current_user, status=status, priority=priority, assigned_to=assigned_to)
    return {"tasks": [task_out(t) for t in tasks], "total": len(tasks)}


@router.get("/lead/{lead_id}")
def tasks_for_lead(lead_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"tasks": [task_out(t) for t in TaskService(db).for_lead(lead_id, current_user)]}


@router.get("/customer/{customer_id}")
def tasks_for_customer(customer_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"tasks": [task_out(t) for t in TaskService(db).for_customer(customer_id, current_user)]}


@router.get("/{task_id}")
def get_task(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"task": task_out(TaskService(db).get(task_id, current_user))}


@router.post("", status_code=201)
def create_task(payload: TaskCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"task": task_out(TaskService(db).create(payload, current_user))}


@router.put("/{task_id}")
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"task": task_out(TaskService(db).update(task_id, payload, current_user))}


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    TaskService(db).delete(task_id, current_user)
    return {"message": "Task deleted successfully"}
