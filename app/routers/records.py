from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..models.records import Company, Contact, Deal, Record
from ..services.store import RecordStore
from .api import get_records

router = APIRouter(prefix="/api", tags=["records"])


def _fresh(record: Record) -> Record:
    # ids and timestamps are always assigned server side
    return type(record)(**record.model_dump(exclude={"id", "created_at"}))


@router.post("/contacts", response_model=Contact, status_code=201)
def create_contact(payload: Contact, records: RecordStore = Depends(get_records)):
    contact = _fresh(payload)
    if contact.company_id:
        company = records.get("companies", contact.company_id)
        if company is None:
            raise HTTPException(status_code=404, detail="Company not found")
        contact.company_name = contact.company_name or company.name
    return records.insert("contacts", contact)


@router.get("/contacts", response_model=List[Contact])
def list_contacts(records: RecordStore = Depends(get_records)):
    return records.list("contacts", newest_first=True)


@router.get("/contacts/{contact_id}", response_model=Contact)
def get_contact(contact_id: str, records: RecordStore = Depends(get_records)):
    contact = records.get("contacts", contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


@router.post("/companies", response_model=Company, status_code=201)
def create_company(payload: Company, records: RecordStore = Depends(get_records)):
    return records.insert("companies", _fresh(payload))


@router.get("/companies", response_model=List[Company])
def list_companies(records: RecordStore = Depends(get_records)):
    return records.list("companies", newest_first=True)


@router.post("/deals", response_model=Deal, status_code=201)
def create_deal(payload: Deal, records: RecordStore = Depends(get_records)):
    return records.insert("deals", _fresh(payload))


@router.get("/deals", response_model=List[Deal])
def list_deals(records: RecordStore = Depends(get_records)):
    return records.list("deals", newest_first=True)
