import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..core.settings import settings
from ..models.csv_item import FieldMapping, ImportResult, ImportRowError, ParsedCSV
from ..models.records import ENTITY_MODELS, ImportJob, Record
from .csv_ops import CANONICAL_FIELDS, auto_detect_field_mapping, rows_to_records, to_csv
from .errors import EmptyImportError, UnknownFieldError, UnsupportedEntityType
from .store import RecordStore

logger = logging.getLogger(__name__)

ENTITY_TABLES = {
    "contact": "contacts",
    "company": "companies",
    "deal": "deals",
}

EXPORT_COLUMNS = {
    "contact": [
        "first_name", "last_name", "email", "phone", "mobile_phone", "job_title",
        "industry", "city", "state_province", "country", "linkedin_url",
        "website_url", "relationship_type", "referral_score",
        "lifetime_referral_value", "notes", "created_at",
    ],
    "company": [
        "name", "industry", "website", "phone", "email", "city", "state_province",
        "country", "employee_count", "annual_revenue", "description", "created_at",
    ],
    "deal": [
        "name", "value", "currency", "deal_type", "status", "probability",
        "expected_close_date", "actual_close_date", "description", "notes",
        "created_at",
    ],
}

# Canonical import field -> record attribute, where they differ
CONTACT_RENAMES = {"company": "company_name", "website": "website_url", "description": "notes"}
COMPANY_FIELDS = (
    "name", "industry", "website", "phone", "email", "city", "state_province",
    "country", "description",
)
DEAL_FIELDS = ("name", "value", "description")

IMPORT_COLUMNS = {
    "contact": [
        "first_name", "last_name", "email", "phone", "company", "job_title",
        "industry", "city", "state_province", "country", "website",
        "linkedin_url", "description",
    ],
    "company": list(COMPANY_FIELDS),
    "deal": list(DEAL_FIELDS),
}


def table_for(entity_type: str) -> str:
    try:
        return ENTITY_TABLES[entity_type]
    except KeyError:
        raise UnsupportedEntityType(entity_type) from None


def _blank_to_none(values: Dict[str, str]) -> Dict[str, Optional[str]]:
    return {k: (v if v != "" else None) for k, v in values.items()}


def _parse_float(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    try:
        value = float(raw.replace(",", ""))
    except ValueError:
        return None
    # nan and inf parse as floats but are not amounts
    return value if math.isfinite(value) else None


def map_contact_row(fields: Dict[str, str]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    values = _blank_to_none(fields)
    if not values.get("first_name"):
        return None, "Missing first_name"
    mapped = {}
    for field, value in values.items():
        if field in ("name", "value"):
            continue
        mapped[CONTACT_RENAMES.get(field, field)] = value
    return mapped, None


def map_company_row(fields: Dict[str, str]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    values = _blank_to_none(fields)
    name = values.get("name") or values.get("company")
    if not name:
        return None, "Missing company name"
    mapped = {f: values.get(f) for f in COMPANY_FIELDS if f in values}
    mapped["name"] = name
    return mapped, None


def map_deal_row(fields: Dict[str, str]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    values = _blank_to_none(fields)
    if not values.get("name"):
        return None, "Missing deal name"
    mapped = {f: values.get(f) for f in DEAL_FIELDS if f in values}
    mapped["value"] = _parse_float(values.get("value"))
    return mapped, None


ROW_MAPPERS = {
    "contact": map_contact_row,
    "company": map_company_row,
    "deal": map_deal_row,
}


def validate_field_mapping(field_mapping: FieldMapping):
    unknown = {f for f in field_mapping.values() if f not in CANONICAL_FIELDS}
    if unknown:
        raise UnknownFieldError(unknown)


def _build_batch(entity_type: str, batch: List[Dict[str, str]], first_row: int):
    model = ENTITY_MODELS[entity_type]
    mapper = ROW_MAPPERS[entity_type]
    records: List[Record] = []
    errors: List[ImportRowError] = []
    for offset, fields in enumerate(batch):
        line = first_row + offset
        mapped, error = mapper(fields)
        if error is None:
            records.append(model(**mapped))
            continue
        logger.warning("Import row %d skipped: %s", line, error)
        errors.append(ImportRowError(row=line, error=error))
    return records, errors


def run_import(
        parsed: ParsedCSV,
        entity_type: str,
        store: RecordStore,
        field_mapping: Optional[FieldMapping] = None,
        file_name: str = "import.csv",
) -> ImportResult:
    """Map parsed rows onto records of ``entity_type`` and store them.

    Rows are handled in batches; a row that cannot become a record is
    reported with its CSV line number (the header is line 1) and skipped.
    """
    table = table_for(entity_type)
    if not parsed.rows:
        raise EmptyImportError()

    if field_mapping is None:
        field_mapping = auto_detect_field_mapping(parsed.headers, entity_type)
    else:
        validate_field_mapping(field_mapping)

    rows = rows_to_records(parsed, field_mapping)
    job = store.insert("import_jobs", ImportJob(
        file_name=file_name,
        entity_type=entity_type,
        total_rows=len(rows),
        field_mapping=dict(field_mapping),
    ))
    logger.info("Import job %s started: %d %s rows from %s", job.id, len(rows), entity_type, file_name)

    errors: List[ImportRowError] = []
    processed = 0
    for start in range(0, len(rows), settings.IMPORT_BATCH_SIZE):
        batch = rows[start:start + settings.IMPORT_BATCH_SIZE]
        records, batch_errors = _build_batch(entity_type, batch, start + 2)
        if records:
            store.insert_many(table, records)
        processed += len(records)
        errors.extend(batch_errors)

        job.processed_rows = processed
        job.error_rows = len(errors)
        job.errors = errors[-settings.MAX_STORED_ERRORS:]
        job.touch()
        store.update("import_jobs", job)

    job.status = "failed" if len(errors) == len(rows) else "completed"
    job.touch()
    store.update("import_jobs", job)
    logger.info("Import job %s %s: %d imported, %d errors", job.id, job.status, processed, len(errors))

    return ImportResult(
        job_id=job.id,
        status=job.status,
        total_rows=len(rows),
        processed_rows=processed,
        error_rows=len(errors),
        errors=errors[:settings.MAX_REPORTED_ERRORS],
    )


def export_csv(entity_type: str, store: RecordStore) -> str:
    table = table_for(entity_type)
    records = [r.model_dump() for r in store.list(table, newest_first=True)]
    return to_csv(EXPORT_COLUMNS[entity_type], records)


def export_filename(entity_type: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{table_for(entity_type)}-export-{today.isoformat()}.csv"


def import_template_csv(entity_type: str) -> str:
    """Header-only CSV whose columns auto-detect back to themselves."""
    table_for(entity_type)
    return to_csv(IMPORT_COLUMNS[entity_type], [])
