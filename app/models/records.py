import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .csv_item import EntityType, ImportRowError


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Record(BaseModel):
    id: str = Field(default_factory=_new_id)
    created_at: str = Field(default_factory=_now)


class Contact(Record):
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile_phone: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    country: Optional[str] = None
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None
    relationship_type: str = "contact"
    referral_score: Optional[float] = None
    lifetime_referral_value: Optional[float] = None
    notes: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None


class Company(Record):
    name: str
    industry: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    country: Optional[str] = None
    employee_count: Optional[int] = None
    annual_revenue: Optional[float] = None
    description: Optional[str] = None


class Deal(Record):
    name: str
    value: Optional[float] = None
    currency: str = "USD"
    deal_type: str = "one_time"
    status: str = "open"
    probability: Optional[int] = None
    expected_close_date: Optional[str] = None
    actual_close_date: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class EmailTemplate(Record):
    name: str
    subject: str
    html_content: str
    text_content: Optional[str] = None


class EmailLog(Record):
    template_id: str
    contact_id: str
    automation_id: Optional[str] = None
    to_email: str
    from_address: str
    subject: str
    html: str
    text: Optional[str] = None
    status: str = "queued"


class ImportJob(Record):
    file_name: str
    entity_type: EntityType
    status: str = "processing"
    total_rows: int = 0
    processed_rows: int = 0
    error_rows: int = 0
    errors: List[ImportRowError] = Field(default_factory=list)
    field_mapping: Dict[str, str] = Field(default_factory=dict)
    updated_at: Optional[str] = None

    def touch(self):
        self.updated_at = _now()


ENTITY_MODELS: Dict[str, Any] = {
    "contact": Contact,
    "company": Company,
    "deal": Deal,
}
