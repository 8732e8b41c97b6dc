import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..models.csv_item import FieldMapping, ParsedCSV

LINE_SPLIT_RE = re.compile(r"\r?\n")

# Order matters: the first field whose aliases match a header wins
FIELD_ALIASES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("first_name", ("first name", "first_name", "firstname", "given name")),
    ("last_name", ("last name", "last_name", "lastname", "surname", "family name")),
    ("email", ("email", "email address", "e-mail")),
    ("phone", ("phone", "phone number", "telephone", "tel")),
    ("company", ("company", "company name", "organization", "org")),
    ("job_title", ("title", "job title", "job_title", "position", "role")),
    ("industry", ("industry", "sector")),
    ("city", ("city", "town")),
    ("state_province", ("state", "province", "state_province", "region")),
    ("country", ("country", "nation")),
    ("website", ("website", "url", "web")),
    ("linkedin_url", ("linkedin", "linkedin url")),
    ("name", ("name", "company name", "deal name")),
    ("value", ("value", "amount", "deal value", "revenue")),
    ("description", ("description", "notes", "details")),
)

CANONICAL_FIELDS = tuple(field for field, _ in FIELD_ALIASES)


def parse_csv_line(line: str) -> List[str]:
    """Split one CSV line into trimmed fields.

    Double quotes toggle quoting and ``""`` inside quotes is a literal quote.
    An unterminated quote swallows the rest of the line into the last field.
    """
    result: List[str] = []
    current: List[str] = []
    in_quotes = False

    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            result.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    result.append("".join(current).strip())
    return result


def parse_csv(text: str) -> ParsedCSV:
    lines = [line for line in LINE_SPLIT_RE.split(text) if line.strip()]
    if not lines:
        return ParsedCSV(headers=[], rows=[])

    headers = parse_csv_line(lines[0])
    rows = [parse_csv_line(line) for line in lines[1:]]
    return ParsedCSV(headers=headers, rows=rows)


def escape_csv_field(value: Any) -> str:
    field = "" if value is None else str(value)
    if "," in field or '"' in field or "\n" in field:
        return '"' + field.replace('"', '""') + '"'
    return field


def to_csv(headers: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> str:
    lines = [",".join(escape_csv_field(h) for h in headers)]
    for row in rows:
        lines.append(",".join(escape_csv_field(row.get(h)) for h in headers))
    return "\n".join(lines)


def auto_detect_field_mapping(
        csv_headers: Sequence[str],
        entity_type: Optional[str] = None,
) -> FieldMapping:
    # entity_type is accepted for callers but does not affect detection yet
    mapping: Dict[str, str] = {}
    for header in csv_headers:
        lower = header.lower().strip()
        for field, aliases in FIELD_ALIASES:
            if lower in aliases or lower == field:
                mapping[header] = field
                break
    return mapping


def rows_to_records(parsed: ParsedCSV, field_mapping: FieldMapping) -> List[Dict[str, str]]:
    """Turn data rows into dicts keyed by canonical field.

    Columns are applied left to right, so when two headers map to the same
    field the right-most non-missing cell wins. Cells past the end of a short
    row are left out.
    """
    columns = [(i, field_mapping.get(h)) for i, h in enumerate(parsed.headers)]
    records = []
    for row in parsed.rows:
        record: Dict[str, str] = {}
        for i, field in columns:
            if field is None or i >= len(row):
                continue
            record[field] = row[i]
        records.append(record)
    return records
