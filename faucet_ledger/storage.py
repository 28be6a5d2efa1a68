"""
Audit Record Store

Append-only backing store for the audit trail. Records are kept in the
order they were appended and are never updated in place; readers always
receive copies.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
import json
import threading


class AuditStore(ABC):
    """Append-only store of audit records, each a JSON-compatible dict with an `id`"""

    @abstractmethod
    def append(self, record: Dict[str, Any]) -> None:
        """Add a record at the end of the log; ids must be unique"""
        pass

    @abstractmethod
    def scan(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Records in append order, optionally only those whose fields equal `filters`"""
        pass

    @abstractmethod
    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def last(self) -> Optional[Dict[str, Any]]:
        """Most recently appended record, None when empty"""
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class InMemoryAuditStore(AuditStore):
    """Process-local audit store"""

    def __init__(self):
        self._records: List[Dict[str, Any]] = []
        self._positions: Dict[str, int] = {}
        self._lock = threading.RLock()

    def append(self, record: Dict[str, Any]) -> None:
        record_id = record['id']
        # Stored as a detached JSON copy
        frozen = json.loads(json.dumps(record))
        with self._lock:
            if record_id in self._positions:
                raise ValueError(f"Audit record {record_id} already exists")
            self._positions[record_id] = len(self._records)
            self._records.append(frozen)

    def scan(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        filters = filters or {}
        with self._lock:
            matches = [
                record for record in self._records
                if all(record.get(key) == value for key, value in filters.items())
            ]
            return json.loads(json.dumps(matches))

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            position = self._positions.get(record_id)
            if position is None:
                return None
            return json.loads(json.dumps(self._records[position]))

    def last(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            if not self._records:
                return None
            return json.loads(json.dumps(self._records[-1]))

    def count(self) -> int:
        with self._lock:
            return len(self._records)
