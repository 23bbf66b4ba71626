"""
Role-scoped access policy.

admin    - everything.
manager  - leads and tasks without restriction; user management limited to
           their own profile and agent accounts; reports limited to own rows.
agent    - only leads/tasks assigned to or created by themselves.

Ids are not trusted to share a type, both sides go through `to_int`.
"""
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from leadcrm.models.user import User


def to_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def same_id(a, b) -> bool:
    a, b = to_int(a), to_int(b)
    return a is not None and a == b


def is_admin(user) -> bool:
    return user.role == "admin"


def is_manager(user) -> bool:
    return user.role == "manager"


# ---------------------------------------------------------
# LEADS / TASKS
# ---------------------------------------------------------
def _owns(user, record) -> bool:
    return same_id(record.assigned_to, user.id) or same_id(record.created_by, user.id)


def can_access_lead(user, lead) -> bool:
    if user.role in ("admin", "manager"):
        return True
    return _owns(user, lead)


def can_access_task(user, task) -> bool:
    if user.role in ("admin", "manager"):
        return True
    return _owns(user, task)


def managed_agent_ids(db: Session, manager) -> list:
    rows = (
        db.query(User.id)
        .filter(User.manager_id == manager.id, User.role == "agent", User.deleted_at.is_(None))
        .all()
    )
    return [r.id for r in rows]


def lead_scope_filter(db: Session, user, model):
    """
    Visibility filter for list/search endpoints.
    Returns None when the user sees every row.
    """
    if is_admin(user):
        return None
    if is_manager(user):
        ids = managed_agent_ids(db, user) + [user.id]
        return or_(model.assigned_to.in_(ids), model.created_by == user.id)
    return or_(model.assigned_to == user.id, model.created_by == user.id)


def report_scope_filter(user, model):
    # Managers only see rows they created or were assigned, unlike lead access
    if is_admin(user):
        return None
    if hasattr(model, "assigned_to"):
        return or_(model.assigned_to == user.id, model.created_by == user.id)
    return model.created_by == user.id


def customer_scope_filter(db: Session, user, model):
    """Customers are visible to their creator, the creator's manager and admins."""
    if is_admin(user):
        return None
    if is_manager(user):
        return model.created_by.in_(managed_agent_ids(db, user) + [user.id])
    return model.created_by == user.id


def can_assign_to(db: Session, actor, target_user_id) -> bool:
    if is_admin(actor):
        return True
    if is_manager(actor):
        target_id = to_int(target_user_id)
        return target_id == actor.id or target_id in managed_agent_ids(db, actor)
    return False


# ---------------------------------------------------------
# USERS
# ---------------------------------------------------------
def can_view_user(actor, target) -> bool:
    if is_admin(actor) or same_id(actor.id, target.id):
        return True
    if is_manager(actor):
        return target.role == "agent" and same_id(target.manager_id, actor.id)
    return False


def can_manage_user(actor, target) -> bool:
    """Edit rights. Managers may edit themselves and agent accounts only."""
    if is_admin(actor) or same_id(actor.id, target.id):
        return True
    if is_manager(actor):
        return target.role == "agent"
    return False


def can_delete_user(actor, target) -> bool:
    if same_id(actor.id, target.id):
        return False
    if is_admin(actor):
        return True
    if is_manager(actor):
        return target.role == "agent"
    return False


def assignable_roles(actor) -> tuple:
    if is_admin(actor):
        return ("admin", "manager", "agent")
    if is_manager(actor):
        return ("agent",)
    return ()
