import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from leadcrm.core.errors import AuthorizationError, NotFoundError, ValidationError
from leadcrm.models.customer import Customer
from leadcrm.models.lead import Lead
from leadcrm.models.user import User
from leadcrm.schemas.lead import LeadCreate, LeadUpdate
from leadcrm.services import permissions
from leadcrm.services.callback_sync import CallbackSync
from leadcrm.services.timezone import parse_date, parse_time

logger = logging.getLogger(__name__)

PLAIN_FIELDS = ("name", "phone", "email", "status", "source", "notes", "assigned_to", "customer_id")


class LeadService:
    def __init__(self, db: Session):
        self.db = db
        self.sync = CallbackSync(db)

    # ---------------------------------------------------------
    # READ
    # ---------------------------------------------------------
    def get(self, lead_id: int) -> Lead:
        lead = self.db.query(Lead).filter(Lead.id == lead_id).first()
        if not lead:
            raise NotFoundError("Lead not found")
        return lead

    def get_for_user(self, lead_id: int, user: User) -> Lead:
        lead = self.get(lead_id)
        if not permissions.can_access_lead(user, lead):
            raise AuthorizationError("Access denied")
        return lead

    def _scoped(self, user: User):
        query = self.db.query(Lead)
        scope = permissions.lead_scope_filter(self.db, user, Lead)
        if scope is not None:
            query = query.filter(scope)
        return query

    def list_leads(self, user: User, limit: int = 100, offset: int = 0, assigned_to: Optional[int] = None) -> List[Lead]:
        """
        Without a filter everyone sees the leads assigned to them. A filter for a
        user outside the caller's team yields an empty list.
        """
        target = user.id if assigned_to is None else assigned_to
        if not permissions.same_id(target, user.id) and not permissions.can_assign_to(self.db, user, target):
            return []

        query = self.db.query(Lead).filter(Lead.assigned_to == target)
        return (
            query.order_by(Lead.created_at.desc(), Lead.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def search(self, user: User, term: str) -> List[Lead]:
        like = f"%{term}%"
        return (
            self._scoped(user)
            .filter(or_(Lead.name.ilike(like), Lead.phone.ilike(like), Lead.email.ilike(like)))
            .order_by(Lead.created_at.desc())
            .all()
        )

    def by_status(self, user: User, status: str) -> List[Lead]:
        return self._scoped(user).filter(Lead.status == status).order_by(Lead.created_at.desc()).all()

    def count(self, user: User) -> int:
        return self._scoped(user).count()

    # ---------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------
    def _check_assignee(self, user: User, assigned_to):
        if assigned_to is None or permissions.same_id(assigned_to, user.id):
            return
        if not permissions.can_assign_to(self.db, user, assigned_to):
            raise AuthorizationError("Cannot assign leads to this user")

    def _parse_callback(self, date_value, time_value):
        try:
            return parse_date(date_value), parse_time(time_value)
        except ValueError:
            raise ValidationError("Invalid callback date or time, expected YYYY-MM-DD and HH:MM")

    def create(self, data: LeadCreate, user: User) -> Lead:
        if not data.name or not data.name.strip():
            raise ValidationError("Name is required")
        self._check_assignee(user, data.assigned_to)
        callback_date, callback_time = self._parse_callback(
            data.resolved_callback_date(), data.resolved_callback_time()
        )

        lead = Lead(
            name=data.name.strip(),
            phone=data.phone,
            email=data.email,
            status=data.status or "חדש",
            source=data.source or "manual",
            notes=data.notes,
            callback_date=callback_date,
            callback_time=callback_time,
            assigned_to=data.assigned_to or user.id,
            created_by=user.id,
            client_id=user.client_id,
            customer_id=data.customer_id,
        )
        self.db.add(lead)
        self.db.commit()
        self.db.refresh(lead)
        logger.info(f"✅ Lead {lead.id} created by user {user.id}")

        self.sync.on_lead_create(lead, user.id)
        return lead

    def update(self, lead_id: int, data: LeadUpdate, user: User) -> Lead:
        lead = self.get_for_user(lead_id, user)

        changes = data.model_dump(exclude_unset=True)
        if "assigned_to" in changes:
            self._check_assignee(user, changes["assigned_to"])
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("Name cannot be empty")

        for field in PLAIN_FIELDS:
            if field in changes:
                setattr(lead, field, changes[field])

        if data.date_key_sent() or data.time_key_sent():
            callback_date, callback_time = self._parse_callback(
                data.resolved_callback_date(), data.resolved_callback_time()
            )
            if data.date_key_sent():
                lead.callback_date = callback_date
            if data.time_key_sent():
                lead.callback_time = callback_time

        self.db.commit()
        self.db.refresh(lead)

        self.sync.on_lead_update(lead, user.id, data.callback_touched())
        return lead

    def update_status(self, lead_id: int, status: str, user: User) -> Lead:
        lead = self.get_for_user(lead_id, user)
        lead.status = status
        self.db.commit()
        self.db.refresh(lead)
        return lead

    def delete(self, lead_id: int, user: User):
        lead = self.get_for_user(lead_id, user)
        removed = self.sync.on_lead_delete(lead.id)
        self.db.delete(lead)
        self.db.commit()
        logger.info(f"🗑️ Lead {lead_id} deleted with {removed} reminder(s)")

    def bulk_assign(self, lead_ids: List[int], assigned_to: int, actor: User) -> int:
        target = self.db.query(User).filter(User.id == assigned_to, User.deleted_at.is_(None)).first()
        if not target:
            raise NotFoundError("User not found")
        if not permissions.can_assign_to(self.db, actor, assigned_to):
            raise AuthorizationError("Cannot assign leads to this user")
        if not lead_ids:
            raise ValidationError("lead_ids must not be empty")

        updated = (
            self.db.query(Lead)
            .filter(Lead.id.in_(lead_ids))
            .update({Lead.assigned_to: assigned_to}, synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"📋 {updated} leads assigned to user {assigned_to} by {actor.id}")
        return updated

    # ---------------------------------------------------------
    # BULK (Excel import)
    # ---------------------------------------------------------
    def _find_or_create_customer(self, row: dict, user: User) -> Customer:
        conditions = []
        if row.get("email"):
            conditions.append(Customer.email == row["email"])
        if row.get("phone"):
            conditions.append(Customer.phone == row["phone"])

        customer = None
        if conditions:
            query = self.db.query(Customer).filter(or_(*conditions))
            if user.client_id is not None:
                query = query.filter(Customer.client_id == user.client_id)
            customer = query.first()

        if not customer:
            customer = Customer(
                full_name=row["name"],
                phone=row.get("phone"),
                email=row.get("email") or None,
                status="active",
                company_name="Unknown",
                client_id=user.client_id,
                created_by=user.id,
            )
            self.db.add(customer)
            self.db.flush()
        return customer

    def create_bulk(self, rows: List[dict], user: User) -> List[Lead]:
        """
        Inserts every row (and its customer) in one transaction.
        Any failure rolls the whole batch back and re-raises.
        """
        leads = []
        try:
            for row in rows:
                customer = self._find_or_create_customer(row, user)
                lead = Lead(
                    name=row["name"],
                    phone=row.get("phone"),
                    email=row.get("email") or None,
                    status=row.get("status") or "new",
                    source=row.get("source") or "excel_import",
                    notes=row.get("notes"),
                    callback_date=row.get("callback_date"),
                    callback_time=row.get("callback_time"),
                    assigned_to=user.id,
                    created_by=user.id,
                    client_id=user.client_id,
                    customer_id=customer.id,
                )
                self.db.add(lead)
                leads.append(lead)
            self.db.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"❌ Bulk lead insert rolled back ({len(rows)} rows)")
            raise

        for lead in leads:
            self.db.refresh(lead)
        return leads
