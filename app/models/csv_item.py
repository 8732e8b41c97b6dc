from typing import Dict, List, Literal

from pydantic import BaseModel, Field

EntityType = Literal["contact", "company", "deal"]

# Raw CSV header -> canonical field name
FieldMapping = Dict[str, str]


class ParsedCSV(BaseModel):
    headers: List[str] = Field(default_factory=list)
    # Rows are not padded: a short row simply has fewer cells than headers
    rows: List[List[str]] = Field(default_factory=list)


class ImportRowError(BaseModel):
    row: int
    error: str


class ImportResult(BaseModel):
    job_id: str
    status: Literal["completed", "failed"]
    total_rows: int
    processed_rows: int
    error_rows: int
    errors: List[ImportRowError] = Field(default_factory=list)
