import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..models.records import EmailLog, EmailTemplate
from ..services.errors import MissingRecipientError
from ..services.store import RecordStore
from ..services.templating import (
    TEMPLATE_VARIABLES,
    extract_variables,
    get_from_address,
    interpolate_template,
    render_email,
)
from .api import get_records

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["email"])


class TemplateCreate(BaseModel):
    name: str
    subject: str
    html_content: str
    text_content: Optional[str] = None


class TemplatePreviewRequest(BaseModel):
    subject: str = ""
    html_content: str = ""
    text_content: Optional[str] = None
    variables: Dict[str, str] = Field(default_factory=dict)


class SendRequest(BaseModel):
    contact_id: str
    template_id: str
    subject_override: Optional[str] = None
    automation_id: Optional[str] = None
    org_name: Optional[str] = None


def _template_out(template: EmailTemplate) -> dict:
    used = set()
    for part in (template.subject, template.html_content, template.text_content or ""):
        used |= extract_variables(part)
    out = template.model_dump()
    out["variables"] = sorted(used)
    return out


@router.get("/templates/variables")
def template_variables() -> List[Dict[str, str]]:
    return [{"key": key, "label": label} for key, label in TEMPLATE_VARIABLES]


@router.post("/templates", status_code=201)
def create_template(payload: TemplateCreate, records: RecordStore = Depends(get_records)):
    template = records.insert("email_templates", EmailTemplate(**payload.model_dump()))
    return _template_out(template)


@router.get("/templates/{template_id}")
def get_template(template_id: str, records: RecordStore = Depends(get_records)):
    template = records.get("email_templates", template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return _template_out(template)


@router.post("/templates/preview")
def preview_template(payload: TemplatePreviewRequest):
    return {
        "subject": interpolate_template(payload.subject, payload.variables),
        "html": interpolate_template(payload.html_content, payload.variables),
        "text": (interpolate_template(payload.text_content, payload.variables)
                 if payload.text_content else None),
    }


@router.post("/automations/send", response_model=EmailLog)
def send_email(payload: SendRequest, records: RecordStore = Depends(get_records)):
    contact = records.get("contacts", payload.contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")

    template = records.get("email_templates", payload.template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")

    try:
        rendered = render_email(template, contact, subject_override=payload.subject_override)
    except MissingRecipientError as e:
        raise HTTPException(status_code=400, detail=str(e))

    log = records.insert("email_logs", EmailLog(
        template_id=template.id,
        contact_id=contact.id,
        automation_id=payload.automation_id,
        to_email=rendered.to,
        from_address=get_from_address(payload.org_name),
        subject=rendered.subject,
        html=rendered.html,
        text=rendered.text,
    ))
    logger.info("Queued email %s to %s using template %s", log.id, rendered.to, template.id)
    return log
