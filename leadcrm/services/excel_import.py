import io
import logging
import re
from datetime import date, datetime, time
from typing import Dict, List, Optional, Tuple

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from leadcrm.core.config import settings
from leadcrm.core.errors import ValidationError
from leadcrm.models.user import User
from leadcrm.services.callback_sync import CallbackSync
from leadcrm.services.lead_service import LeadService
from leadcrm.services.timezone import parse_date, parse_time

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".xls")

NAME_KEYWORDS = ["name", "שם", "full_name", "fullname", "customer", "לקוח", "שם מלא"]
PHONE_KEYWORDS = ["phone", "טלפון", "mobile", "cell", "נייד", "telephone"]
EMAIL_KEYWORDS = ["email", "אימייל", "mail", "e_mail", "e-mail"]

OPTIONAL_KEYWORDS = {
    "status": ["status", "סטטוס"],
    "source": ["source", "מקור"],
    "callback_date": ["callback_date", "callback date", "followup_date", "follow-up date", "תאריך מעקב", "תאריך חזרה"],
    "callback_time": ["callback_time", "callback time", "followup_time", "follow-up time", "שעת מעקב", "שעת חזרה"],
    "notes": ["notes", "note", "הערות", "הערה"],
}

PHONE_CHARS = re.compile(r"^[\d\-\+\(\)\s]+$")
ISRAELI_MOBILE = re.compile(r"05\d{8}")
NAME_CHARS = re.compile(r"^[א-ת\s\w]+$")
PHONE_STRIP = re.compile(r"[\s\-\(\)]")
CLEAN_PHONE = re.compile(r"^[\d\+]+$")

SNIFF_COLUMNS = 5
SNIFF_ROWS = 5

TEMPLATE_HEADERS = ["שם", "טלפון", "אימייל", "סטטוס", "מקור", "תאריך מעקב", "שעת מעקב", "הערות"]
TEMPLATE_SAMPLE = ["דוגמה", "050-1234567", "example@email.com (אופציונלי)", "new", "website", "2024-01-15", "10:00", "הערות לדוגמה"]
TEMPLATE_WIDTHS = [20, 15, 25, 15, 15, 15, 15, 30]
TEMPLATE_SHEET = "לידים"
TEMPLATE_FILENAME = "leads_template.xlsx"


# ---------------------------------------------------------
# COLUMN DETECTION (pure)
# ---------------------------------------------------------
def _matches(header: str, keywords: List[str]) -> bool:
    lowered = header.lower()
    return any(k.lower() in lowered for k in keywords)


def looks_like_phone(value) -> bool:
    return isinstance(value, str) and bool(PHONE_CHARS.match(value) or ISRAELI_MOBILE.search(value))


def looks_like_name(value) -> bool:
    return (
        isinstance(value, str)
        and len(value) > 2
        and bool(NAME_CHARS.match(value))
        and not PHONE_CHARS.match(value)
    )


def looks_like_email(value) -> bool:
    return isinstance(value, str) and "@" in value


def detect_columns(rows: List[dict]) -> Dict[str, str]:
    """
    Maps 'name' / 'phone' / 'email' to header keys.

    Pass 1 matches headers against the bilingual keyword lists (last match
    wins). Pass 2 runs only when name or phone is still missing and sniffs the
    values of the first 5 columns over the first 5 rows.
    """
    if not rows:
        return {}

    keys = list(rows[0].keys())
    mapping = {}

    for key in keys:
        header = str(key)
        if _matches(header, NAME_KEYWORDS):
            mapping["name"] = key
        elif _matches(header, PHONE_KEYWORDS):
            mapping["phone"] = key
        elif _matches(header, EMAIL_KEYWORDS):
            mapping["email"] = key

    if "name" not in mapping or "phone" not in mapping:
        for key in keys[:SNIFF_COLUMNS]:
            if key in mapping.values():
                continue
            values = [row.get(key) for row in rows[:SNIFF_ROWS]]
            values = [v for v in values if v]

            if "name" not in mapping and any(looks_like_name(v) for v in values):
                mapping["name"] = key
            elif "phone" not in mapping and any(looks_like_phone(v) for v in values):
                mapping["phone"] = key
            elif "email" not in mapping and any(looks_like_email(v) for v in values):
                mapping["email"] = key

    return mapping


def detect_optional_columns(headers: List[str], taken: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    used = set((taken or {}).values())
    mapping = {}
    for header in headers:
        if header in used:
            continue
        for field, keywords in OPTIONAL_KEYWORDS.items():
            if field not in mapping and _matches(str(header), keywords):
                mapping[field] = header
                break
    return mapping


# ---------------------------------------------------------
# WORKBOOK READING
# ---------------------------------------------------------
def _cell_text(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value)
    return text if text.strip() else None


def read_rows(content: bytes) -> List[dict]:
    """First worksheet -> list of {header: text} dicts. Empty rows are dropped."""
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.warning(f"⚠️ Unreadable workbook: {e}")
        raise ValidationError("Could not read Excel file, please upload a valid .xlsx workbook")

    try:
        sheet = wb.worksheets[0]
        iterator = sheet.iter_rows(values_only=True)
        header_row = next(iterator, None)
        if not header_row:
            return []

        headers = []
        for i, h in enumerate(header_row):
            text = _cell_text(h)
            headers.append(text.strip() if text else f"__EMPTY_{i}")

        rows = []
        for raw in iterator:
            values = [_cell_text(v) for v in raw]
            if not any(values):
                continue
            values += [None] * (len(headers) - len(values))
            rows.append(dict(zip(headers, values)))
        return rows
    finally:
        wb.close()


# ---------------------------------------------------------
# ROW VALIDATION
# ---------------------------------------------------------
def validate_rows(rows: List[dict], mapping: Dict[str, str], optional: Dict[str, str]) -> Tuple[List[dict], List[str], List[str]]:
    valid, errors, warnings = [], [], []

    for i, row in enumerate(rows):
        row_number = i + 2 # header is row 1

        name = row.get(mapping["name"]) if "name" in mapping else None
        phone = row.get(mapping["phone"]) if "phone" in mapping else None
        email = row.get(mapping["email"]) if "email" in mapping else None

        if not name or not str(name).strip():
            errors.append(f"Row {row_number}: Name is required (found in column: {mapping.get('name', 'not detected')})")
            continue
        if not phone or not str(phone).strip():
            errors.append(f"Row {row_number}: Phone is required (found in column: {mapping.get('phone', 'not detected')})")
            continue

        clean_phone = PHONE_STRIP.sub("", str(phone))
        if not CLEAN_PHONE.match(clean_phone) or len(clean_phone) < 9:
            warnings.append(f'Row {row_number}: Phone number "{phone}" might be invalid')

        email = str(email).strip() if email else ""
        if email and "@" not in email:
            warnings.append(f'Row {row_number}: Email "{email}" might be invalid')

        data = {
            "name": str(name).strip(),
            "phone": clean_phone,
            "email": email,
            "status": row.get(optional["status"]) if "status" in optional else None,
            "source": row.get(optional["source"]) if "source" in optional else None,
            "notes": row.get(optional["notes"]) if "notes" in optional else None,
            "callback_date": None,
            "callback_time": None,
        }

        raw_date = row.get(optional["callback_date"]) if "callback_date" in optional else None
        raw_time = row.get(optional["callback_time"]) if "callback_time" in optional else None
        if raw_date or raw_time:
            try:
                data["callback_date"] = parse_date(raw_date)
                data["callback_time"] = parse_time(raw_time)
            except ValueError:
                data["callback_date"] = data["callback_time"] = None
                warnings.append(f"Row {row_number}: Follow-up date/time ignored, expected YYYY-MM-DD and HH:MM")

        valid.append(data)

    return valid, errors, warnings


# ---------------------------------------------------------
# IMPORT SERVICE
# ---------------------------------------------------------
class ExcelImportService:
    def __init__(self, db: Session):
        self.db = db

    def check_upload(self, filename: Optional[str], content: bytes):
        if not filename or not content:
            raise ValidationError("No file uploaded")
        if not filename.lower().endswith(ALLOWED_EXTENSIONS):
            raise ValidationError("Only Excel files (.xlsx, .xls) are allowed")
        if len(content) > settings.MAX_UPLOAD_BYTES:
            raise ValidationError("File too large, maximum size is 10MB")

    def import_file(self, filename: Optional[str], content: bytes, user: User) -> dict:
        self.check_upload(filename, content)

        rows = read_rows(content)
        if not rows:
            raise ValidationError("Excel file is empty")

        mapping = detect_columns(rows)
        if "name" not in mapping and "phone" not in mapping:
            raise ValidationError({
                "error": "Could not detect name and phone columns. Please ensure your Excel has name and phone data in the first few columns.",
                "suggestion": 'Make sure column A has names and column B has phone numbers, or use clear column headers like "שם", "name", "טלפון", "phone"',
                "headers": list(rows[0].keys()),
            })

        optional = detect_optional_columns(list(rows[0].keys()), mapping)
        valid, errors, warnings = validate_rows(rows, mapping, optional)

        if not valid:
            raise ValidationError({
                "error": "Validation errors found",
                "errors": errors,
                "warnings": warnings,
                "validRows": 0,
                "totalRows": len(rows),
                "detectedColumns": mapping,
            })

        leads = LeadService(self.db).create_bulk(valid, user)
        logger.info(f"📥 Excel import by user {user.id}: {len(leads)}/{len(rows)} rows imported")

        # Outside the import transaction, failures only skip the reminder
        reminders = CallbackSync(self.db).on_bulk_import(leads, user.id)

        return {
            "message": "Leads imported successfully",
            "imported": len(leads),
            "total": len(rows),
            "leads": leads,
            "detectedColumns": {**mapping, **optional},
            "errors": errors,
            "warnings": warnings,
            "summary": {
                "totalRows": len(rows),
                "successfulImports": len(leads),
                "failedRows": len(errors),
                "warnings": len(warnings),
                "remindersCreated": reminders,
                "columnsDetected": {
                    "name": mapping.get("name", "Auto-detected"),
                    "phone": mapping.get("phone", "Auto-detected"),
                    "email": mapping.get("email", "Not found"),
                },
            },
        }


# ---------------------------------------------------------
# TEMPLATE
# ---------------------------------------------------------
def build_template() -> bytes:
    wb = Workbook()
    sheet = wb.active
    sheet.title = TEMPLATE_SHEET
    sheet.append(TEMPLATE_HEADERS)
    sheet.append(TEMPLATE_SAMPLE)

    for i, width in enumerate(TEMPLATE_WIDTHS, start=1):
        sheet.column_dimensions[get_column_letter(i)].width = width

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
