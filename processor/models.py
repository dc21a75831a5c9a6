"""Data models for sheet ingestion."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# Ordered text cells: title, date, time, status, remarks, then unused columns
RawRow = List[str]


class RowCategory(Enum):
    """Classification outcome for a raw row."""
    EVENT = 'event'
    TASK = 'task'
    SKIP = 'skip'


class Priority(Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class RunStatus(Enum):
    """Lifecycle state of an ingestion run."""
    PENDING = 'pending'
    SUCCESS = 'success'
    FAILED = 'failed'
    SKIPPED = 'skipped'


class UpsertAction(Enum):
    CREATED = 'created'
    UPDATED = 'updated'


@dataclass(frozen=True)
class SourceRef:
    """Provenance of an ingested record: sheet id and physical row number."""
    sheet_id: str
    row_index: int


@dataclass
class CanonicalEvent:
    """Public, ownerless event built from a sheet row."""
    title: str
    description: Optional[str]
    date: str
    start_time: str
    end_time: str
    is_online: bool
    location: Optional[str]
    meeting_link: Optional[str]
    notes: Optional[str]
    source: SourceRef
    user_id: Optional[str] = None


@dataclass
class CanonicalTask:
    """Public, ownerless task built from a sheet row."""
    title: str
    description: Optional[str]
    date: str
    start_time: Optional[str]
    end_time: Optional[str]
    is_completed: bool
    priority: Priority
    notes: Optional[str]
    source: SourceRef
    user_id: Optional[str] = None


CanonicalRecord = Union[CanonicalEvent, CanonicalTask]


@dataclass
class UpsertResult:
    """Outcome of reconciling one record."""
    action: UpsertAction
    record_id: str


@dataclass
class IngestionRun:
    """Audit entry for one end-to-end sync run."""
    id: str
    source_id: str
    status: RunStatus
    started_at: str
    completed_at: Optional[str] = None
    items_processed: int = 0
    items_created: int = 0
    items_updated: int = 0
    error_message: Optional[str] = None
    sync_type: str = 'sheets_sync'
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SyncSummary:
    """Counters accumulated by a run."""
    sync_log_id: Optional[str] = None
    items_processed: int = 0
    items_created: int = 0
    items_updated: int = 0
    events_processed: int = 0
    tasks_processed: int = 0
    row_errors: int = 0

    def to_response(self) -> Dict[str, Any]:
        """Payload returned to the trigger surface."""
        return {
            'success': True,
            'items_processed': self.items_processed,
            'items_created': self.items_created,
            'items_updated': self.items_updated,
            'events_processed': self.events_processed,
            'tasks_processed': self.tasks_processed,
            'sync_log_id': self.sync_log_id
        }
