from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.security import get_current_user
from leadcrm.models.user import User
from leadcrm.services.report_service import ReportService

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("/dashboard")
def dashboard(
    period: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ReportService(db, current_user).dashboard(period)
