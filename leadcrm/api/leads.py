import io
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from leadcrm.core.config import settings
from leadcrm.core.database import get_db
from leadcrm.core.security import get_current_user, require_roles
from leadcrm.models.lead import Lead
from leadcrm.models.user import User
from leadcrm.schemas.lead import BulkAssignRequest, LeadCreate, LeadResponse, LeadStatusUpdate, LeadUpdate
from leadcrm.services import permissions
from leadcrm.services.excel_import import ExcelImportService, TEMPLATE_FILENAME, build_template
from leadcrm.services.lead_service import LeadService

router = APIRouter(prefix="/api/leads", tags=["Leads"])


def lead_out(lead: Lead) -> dict:
    return LeadResponse.model_validate(lead).model_dump(mode="json")


# =========================================================
# 1. LISTING
# =========================================================

@router.get("")
def list_leads(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    assigned_to: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leads = LeadService(db).list_leads(current_user, limit=limit, offset=offset, assigned_to=assigned_to)
    return {"leads": [lead_out(l) for l in leads], "total": len(leads)}


@router.get("/search/{term}")
def search_leads(term: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    leads = LeadService(db).search(current_user, term)
    return {"leads": [lead_out(l) for l in leads], "total": len(leads)}


@router.get("/status/{status}")
def leads_by_status(status: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    leads = LeadService(db).by_status(current_user, status)
    return {"leads": [lead_out(l) for l in leads], "total": len(leads)}


@router.get("/stats/count")
def lead_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    query = db.query(Lead.status, func.count(Lead.id))
    scope = permissions.lead_scope_filter(db, current_user, Lead)
    if scope is not None:
        query = query.filter(scope)
    rows = query.group_by(Lead.status).all()
    return {"stats": [{"status": status, "count": count} for status, count in rows]}


# =========================================================
# 2. EXCEL
# =========================================================

@router.get("/template/excel")
def download_template(current_user: User = Depends(get_current_user)):
    content = build_template()
    return StreamingResponse(
        io.BytesIO(content),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={TEMPLATE_FILENAME}"},
    )


@router.post("/import/excel")
async def import_excel(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # One byte past the limit is enough for the size check to reject it
    content = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    result = ExcelImportService(db).import_file(file.filename, content, current_user)
    result["leads"] = [lead_out(l) for l in result["leads"]]
    return result


# =========================================================
# 3. BULK ASSIGN
# =========================================================

@router.patch("/bulk-assign")
def bulk_assign(
    payload: BulkAssignRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin", "manager")),
):
    updated = LeadService(db).bulk_assign(payload.lead_ids, payload.assigned_to, current_user)
    return {"message": f"{updated} leads assigned successfully", "updated": updated}


# =========================================================
# 4. SINGLE LEAD
# =========================================================

@router.get("/{lead_id}")
def get_lead(lead_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"lead": lead_out(LeadService(db).get_for_user(lead_id, current_user))}


@router.post("", status_code=201)
def create_lead(payload: LeadCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    lead = LeadService(db).create(payload, current_user)
    return {"lead": lead_out(lead)}


@router.put("/{lead_id}")
def update_lead(
    lead_id: int,
    payload: LeadUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lead = LeadService(db).update(lead_id, payload, current_user)
    return {"lead": lead_out(lead)}


@router.patch("/{lead_id}/status")
def update_lead_status(
    lead_id: int,
    payload: LeadStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    lead = LeadService(db).update_status(lead_id, payload.status, current_user)
    return {"lead": lead_out(lead)}


@router.delete("/{lead_id}")
def delete_lead(lead_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    LeadService(db).delete(lead_id, current_user)
    return {"message": "Lead deleted successfully"}
