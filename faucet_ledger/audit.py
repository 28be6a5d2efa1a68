"""
Audit Trail Module

Hash-chained immutable audit log with SHA-256 for tamper detection.
Every faucet transition, and every rejected attempt, is recorded here.
"""

import hashlib
import json
import logging
import threading
import uuid
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any

from .storage import AuditStore, InMemoryAuditStore


logger = logging.getLogger("faucet.audit")


class AuditEventType(Enum):
    """Types of audit events"""
    LEDGER_CREATED = "ledger_created"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    WITHDRAWAL_REJECTED = "withdrawal_rejected"
    LIMIT_CHANGED = "limit_changed"
    WINDOW_CHANGED = "window_changed"
    BALANCE_SWEPT = "balance_swept"
    LEDGER_DISABLED = "ledger_disabled"
    AUTHORIZATION_FAILED = "authorization_failed"


@dataclass
class AuditEvent:
    """
    Immutable audit event with hash chaining for tamper detection
    """
    id: str
    sequence: int
    created_at: datetime
    event_type: AuditEventType
    entity_type: str
    entity_id: str
    previous_hash: str
    current_hash: str
    metadata: Dict[str, Any]
    actor: Optional[str] = None  # Identity that invoked the operation

    def __post_init__(self):
        if self.metadata:
            self.metadata = {k: _convert_value(v) for k, v in self.metadata.items()}

    def calculate_hash(self) -> str:
        """
        SHA-256 over every field except current_hash
        """
        hash_data = {
            'id': self.id,
            'sequence': self.sequence,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'actor': self.actor,
            'metadata': self.metadata
        }
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['created_at'] = self.created_at.isoformat()
        result['event_type'] = self.event_type.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        data = dict(data)
        if isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if isinstance(data['event_type'], str):
            data['event_type'] = AuditEventType(data['event_type'])
        return cls(**data)


def _convert_value(value: Any) -> Any:
    """Convert metadata values to a JSON-serializable form"""
    if isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, dict):
        return {str(k): _convert_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [_convert_value(v) for v in value]
    elif value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection
    """

    def __init__(self, store: Optional[AuditStore] = None):
        self.store = store if store is not None else InMemoryAuditStore()
        self._last_hash: Optional[str] = None
        self._sequence = 0
        self._lock = threading.Lock()
        self._load_chain_head()

    def _load_chain_head(self) -> None:
        """Resume sequence numbering and chaining from the newest stored event"""
        latest = self.store.last()
        if latest:
            self._last_hash = latest.get('current_hash')
            self._sequence = latest.get('sequence', 0)

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        actor: Optional[Any] = None
    ) -> AuditEvent:
        """
        Log an audit event with hash chaining

        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: ID of the entity
            metadata: Additional event-specific data
            actor: Identity that initiated the action

        Returns:
            Created AuditEvent

        The chain head only advances once the store has accepted the event.
        """
        with self._lock:
            event = AuditEvent(
                id=str(uuid.uuid4()),
                sequence=self._sequence + 1,
                created_at=datetime.now(timezone.utc),
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                previous_hash=self._last_hash or "",
                current_hash="",
                metadata=metadata or {},
                actor=None if actor is None else str(actor)
            )
            event.current_hash = event.calculate_hash()

            self.store.append(event.to_dict())
            self._sequence = event.sequence
            self._last_hash = event.current_hash

            logger.debug(f"Audit event {event.sequence} {event_type.value} for {entity_type}:{entity_id}")
            return event

    def _load_events(self, filters: Optional[Dict[str, Any]] = None) -> List[AuditEvent]:
        events = [AuditEvent.from_dict(data) for data in self.store.scan(filters)]
        events.sort(key=lambda x: x.sequence)
        return events

    def get_event_by_id(self, event_id: str) -> Optional[AuditEvent]:
        data = self.store.get(event_id)
        if data:
            return AuditEvent.from_dict(data)
        return None

    def get_events_for_entity(
        self,
        entity_type: str,
        entity_id: str,
        limit: Optional[int] = None
    ) -> List[AuditEvent]:
        """All events for one entity, oldest first; `limit` keeps the most recent N"""
        events = self._load_events({'entity_type': entity_type, 'entity_id': entity_id})
        if limit:
            events = events[-limit:]
        return events

    def get_events_by_type(
        self,
        event_type: AuditEventType,
        limit: Optional[int] = None
    ) -> List[AuditEvent]:
        events = self._load_events({'event_type': event_type.value})
        if limit:
            events = events[-limit:]
        return events

    def get_all_events(self, limit: Optional[int] = None) -> List[AuditEvent]:
        events = self._load_events()
        if limit:
            events = events[-limit:]
        return events

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': [],
        }

        events = self._load_events()
        result['total_events'] = len(events)

        previous_hash = ""
        for position, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'event_id': event.id,
                    'position': position,
                    'expected_hash': event.calculate_hash(),
                    'actual_hash': event.current_hash
                })
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'event_id': event.id,
                    'position': position,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': event.previous_hash
                })
            previous_hash = event.current_hash

        if not result['valid']:
            logger.warning(
                f"Audit chain integrity check failed: {len(result['hash_errors'])} hash errors, "
                f"{len(result['chain_breaks'])} chain breaks"
            )
        return result

    def count_events(self) -> int:
        return self.store.count()

    def get_latest_hash(self) -> Optional[str]:
        """Get the hash of the most recent audit event"""
        return self._last_hash
