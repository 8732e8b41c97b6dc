import threading
from collections import OrderedDict
from typing import Dict, List, Optional, TypeVar

from ..core.settings import settings
from ..models.csv_item import ParsedCSV
from ..models.records import Record

R = TypeVar("R", bound=Record)


class LRUStore:
    """Parsed uploads kept between preview and commit."""

    def __init__(self, capacity: int = 20):
        self.capacity = capacity
        self.data: "OrderedDict[str, ParsedCSV]" = OrderedDict()
        self.lock = threading.Lock()

    def put(self, key: str, value: ParsedCSV):
        with self.lock:
            if key in self.data:
                self.data.move_to_end(key)
            self.data[key] = value
            if len(self.data) > self.capacity:
                self.data.popitem(last=False)

    def get(self, key: str) -> Optional[ParsedCSV]:
        with self.lock:
            item = self.data.get(key)
            if item is not None:
                self.data.move_to_end(key)
            return item

    def pop(self, key: str) -> Optional[ParsedCSV]:
        with self.lock:
            return self.data.pop(key, None)


class RecordStore:
    """In-process tables keyed by record id, one table per record kind."""

    def __init__(self):
        self.tables: Dict[str, "OrderedDict[str, Record]"] = {}
        self.lock = threading.Lock()

    def insert(self, table: str, record: R) -> R:
        with self.lock:
            self.tables.setdefault(table, OrderedDict())[record.id] = record
        return record

    def insert_many(self, table: str, records: List[R]) -> List[R]:
        with self.lock:
            rows = self.tables.setdefault(table, OrderedDict())
            for record in records:
                rows[record.id] = record
        return records

    def update(self, table: str, record: R) -> R:
        with self.lock:
            rows = self.tables.get(table)
            if rows is None or record.id not in rows:
                raise KeyError(record.id)
            rows[record.id] = record
        return record

    def get(self, table: str, record_id: str) -> Optional[Record]:
        with self.lock:
            return self.tables.get(table, {}).get(record_id)

    def list(self, table: str, newest_first: bool = False) -> List[Record]:
        with self.lock:
            records = list(self.tables.get(table, {}).values())
        if newest_first:
            # insertion order breaks ties between equal timestamps
            records = [r for _, r in sorted(
                enumerate(records), key=lambda p: (p[1].created_at, p[0]), reverse=True)]
        return records


# Global upload cache shared by the import endpoints
previews = LRUStore(capacity=settings.PREVIEW_CACHE_SIZE)
