from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadcrm.api.leads import lead_out
from leadcrm.core.database import get_db
from leadcrm.core.security import get_current_user
from leadcrm.models.user import User
from leadcrm.schemas.customer import CustomerConvert, CustomerResponse
from leadcrm.services.customer_service import CustomerService

router = APIRouter(prefix="/api/customers", tags=["Customers"])


def customer_out(customer) -> dict:
    return CustomerResponse.model_validate(customer).model_dump(mode="json")


@router.get("")
def list_customers(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    customers = CustomerService(db).list_customers(current_user, status=status)
    return {"customers": [customer_out(c) for c in customers], "total": len(customers)}


@router.post("/convert-from-lead/{lead_id}", status_code=201)
def convert_from_lead(
    lead_id: int,
    payload: Optional[CustomerConvert] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    customer, lead = CustomerService(db).convert_from_lead(lead_id, payload or CustomerConvert(), current_user)
    return {"customer": customer_out(customer), "lead": lead_out(lead)}
