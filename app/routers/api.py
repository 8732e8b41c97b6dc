import logging
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from ..core.settings import settings
from ..models.csv_item import EntityType, ImportResult, ParsedCSV
from ..services.csv_ops import FIELD_ALIASES, auto_detect_field_mapping, parse_csv
from ..services.errors import EmptyImportError, UnknownFieldError, UnsupportedEntityType
from ..services.importer import export_csv, export_filename, import_template_csv, run_import
from ..services.store import RecordStore, previews

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["import-export"])


def get_records(request: Request) -> RecordStore:
    return request.app.state.records


class CommitRequest(BaseModel):
    file_id: str = Field(...)
    entity_type: EntityType = Field("contact")
    field_mapping: Optional[Dict[str, str]] = Field(None)


async def _read_upload(file: UploadFile) -> ParsedCSV:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    parsed = parse_csv(text)
    if not parsed.rows:
        raise HTTPException(status_code=400, detail=str(EmptyImportError()))
    return parsed


def _import_or_400(parsed: ParsedCSV, entity_type: str, records: RecordStore,
                   field_mapping: Optional[Dict[str, str]], file_name: str) -> ImportResult:
    try:
        return run_import(parsed, entity_type, records, field_mapping=field_mapping, file_name=file_name)
    except (UnsupportedEntityType, UnknownFieldError, EmptyImportError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/import/preview")
async def preview_import(file: UploadFile, entity_type: str = Form("contact")):
    parsed = await _read_upload(file)

    file_id = str(uuid.uuid4())
    previews.put(file_id, parsed)
    logger.info("Staged %s as %s (%d rows)", file.filename, file_id, len(parsed.rows))

    return JSONResponse({
        "file_id": file_id,
        "file_name": file.filename,
        "headers": parsed.headers,
        "total_rows": len(parsed.rows),
        "field_mapping": auto_detect_field_mapping(parsed.headers, entity_type),
        "preview": parsed.rows[:settings.PREVIEW_ROWS],
    })


@router.post("/import/commit", response_model=ImportResult)
async def commit_import(payload: CommitRequest, records: RecordStore = Depends(get_records)):
    parsed = previews.get(payload.file_id)
    if parsed is None:
        raise HTTPException(status_code=404, detail="file_id not found or expired")

    result = _import_or_400(parsed, payload.entity_type, records, payload.field_mapping,
                            file_name=f"{payload.file_id}.csv")
    previews.pop(payload.file_id)
    return result


@router.post("/import", response_model=ImportResult)
async def import_csv(
        file: UploadFile = File(...),
        entity_type: str = Form("contact"),
        records: RecordStore = Depends(get_records),
):
    parsed = await _read_upload(file)
    return _import_or_400(parsed, entity_type, records, None, file_name=file.filename)


@router.get("/import/template")
def import_template(entity_type: str = "contact"):
    try:
        content = import_template_csv(entity_type)
    except UnsupportedEntityType as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Response(
        content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{entity_type}-import-template.csv"'},
    )


@router.get("/export")
def export_api(
        entity_type: str = "contact",
        format: str = "csv",
        records: RecordStore = Depends(get_records),
):
    if format != "csv":
        raise HTTPException(status_code=400, detail="Only CSV format is supported")
    try:
        content = export_csv(entity_type, records)
    except UnsupportedEntityType as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = export_filename(entity_type)
    return Response(
        content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/import/fields")
def import_fields() -> Dict[str, List[str]]:
    return {field: list(aliases) for field, aliases in FIELD_ALIASES}
