import re
from typing import Any, Dict, Mapping, Optional, Set

from pydantic import BaseModel

from ..core.settings import settings
from .errors import MissingRecipientError

VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")

TEMPLATE_VARIABLES = (
    ("first_name", "First Name"),
    ("last_name", "Last Name"),
    ("full_name", "Full Name"),
    ("email", "Email"),
    ("company_name", "Company Name"),
    ("job_title", "Job Title"),
)


class RenderedEmail(BaseModel):
    to: str
    subject: str
    html: str
    text: Optional[str] = None


def interpolate_template(template: str, variables: Mapping[str, str]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left as written."""
    def _sub(match):
        key = match.group(1)
        if key in variables and variables[key] is not None:
            return variables[key]
        return match.group(0)

    return VARIABLE_RE.sub(_sub, template)


def extract_variables(template: str) -> Set[str]:
    return set(VARIABLE_RE.findall(template))


def _get(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def _company_name(contact: Any) -> str:
    company = _get(contact, "company")
    if isinstance(company, str):
        return company
    if company is not None:
        name = _get(company, "name")
        if name:
            return name
    return _get(contact, "company_name") or ""


def build_contact_variables(contact: Any) -> Dict[str, str]:
    """Variables for a contact given as a mapping or a model instance."""
    first_name = _get(contact, "first_name") or ""
    last_name = _get(contact, "last_name") or ""
    return {
        "first_name": first_name,
        "last_name": last_name,
        "full_name": " ".join(part for part in (first_name, last_name) if part),
        "email": _get(contact, "email") or "",
        "company_name": _company_name(contact),
        "job_title": _get(contact, "job_title") or "",
    }


def get_from_address(org_name: Optional[str] = None) -> str:
    if org_name:
        return f"{org_name} <{settings.EMAIL_FROM_ADDRESS}>"
    return settings.EMAIL_FROM_ADDRESS


def render_email(template: Any, contact: Any, subject_override: Optional[str] = None) -> RenderedEmail:
    to = _get(contact, "email")
    if not to:
        raise MissingRecipientError()

    variables = build_contact_variables(contact)
    text_content = _get(template, "text_content")
    return RenderedEmail(
        to=to,
        subject=interpolate_template(subject_override or _get(template, "subject"), variables),
        html=interpolate_template(_get(template, "html_content"), variables),
        text=interpolate_template(text_content, variables) if text_content else None,
    )
