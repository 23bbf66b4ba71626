import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from leadcrm.core.errors import ConflictError
from leadcrm.models.customer import Customer
from leadcrm.models.lead import Lead
from leadcrm.models.user import User
from leadcrm.schemas.customer import CustomerConvert
from leadcrm.services import permissions
from leadcrm.services.lead_service import LeadService

logger = logging.getLogger(__name__)

CONVERTED_LEAD_STATUS = "לקוח קיים"
DEFAULT_CUSTOMER_STATUS = "פעיל"


class CustomerService:
    def __init__(self, db: Session):
        self.db = db

    def list_customers(self, user: User, status: Optional[str] = None) -> List[Customer]:
        query = self.db.query(Customer)
        scope = permissions.customer_scope_filter(self.db, user, Customer)
        if scope is not None:
            query = query.filter(scope)
        if status:
            query = query.filter(Customer.status == status)
        return query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()

    def convert_from_lead(self, lead_id: int, data: CustomerConvert, user: User):
        """
        Creates a customer from the lead, links it through `lead.customer_id`
        and marks the lead as an existing customer, in one commit.
        """
        lead: Lead = LeadService(self.db).get_for_user(lead_id, user)
        if lead.customer_id is not None:
            raise ConflictError("Lead was already converted to a customer")

        customer = Customer(
            full_name=data.full_name or lead.name,
            phone=data.phone or lead.phone,
            email=data.email or lead.email,
            status=data.status or DEFAULT_CUSTOMER_STATUS,
            company_name=data.company_name,
            notes=data.notes,
            client_id=user.client_id,
            created_by=user.id,
        )
        self.db.add(customer)
        self.db.flush()

        lead.customer_id = customer.id
        lead.status = CONVERTED_LEAD_STATUS
        self.db.commit()
        self.db.refresh(customer)
        self.db.refresh(lead)
        logger.info(f"🤝 Lead {lead.id} converted to customer {customer.id} by user {user.id}")
        return customer, lead
