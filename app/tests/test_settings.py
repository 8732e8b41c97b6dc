import pytest
from pydantic import ValidationError

from app.core.settings import Settings
from app.services.csv_ops import parse_csv
from app.services.importer import run_import
from app.services.store import RecordStore


def test_settings_defaults(monkeypatch):
    for name in ("IMPORT_BATCH_SIZE", "PREVIEW_CACHE_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.IMPORT_BATCH_SIZE == 50
    assert s.PREVIEW_CACHE_SIZE == 20
    assert s.LOG_LEVEL == "INFO"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("IMPORT_BATCH_SIZE", "7")
    monkeypatch.setenv("EMAIL_FROM_ADDRESS", "crm@example.com")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = Settings()
    assert s.IMPORT_BATCH_SIZE == 7
    assert s.EMAIL_FROM_ADDRESS == "crm@example.com"
    assert s.LOG_LEVEL == "DEBUG"


@pytest.mark.parametrize("name,value", [
    ("IMPORT_BATCH_SIZE", "0"),
    ("PREVIEW_CACHE_SIZE", "0"),
    ("PREVIEW_ROWS", "-1"),
    ("IMPORT_BATCH_SIZE", "fifty"),
    ("PORT", "70000"),
    ("LOG_LEVEL", "loud"),
])
def test_settings_reject_invalid_environment(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()


def test_import_with_smallest_batch_size(monkeypatch):
    monkeypatch.setenv("IMPORT_BATCH_SIZE", "1")
    monkeypatch.setattr("app.services.importer.settings", Settings())
    result = run_import(parse_csv("first_name\nA\nB\n"), "contact", RecordStore())
    assert result.processed_rows == 2
