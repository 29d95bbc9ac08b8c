"""Live-update event models.

A change-event source yields two kinds of messages:
- ChangeEvent: an insert, update or delete on the case collection
- ConnectionStatus: a signal about the subscription itself
"""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field

from cm_core_lib.models.case import CaseRecord


class EventKind(str, Enum):
    """Kind of change applied to the case collection"""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ConnectionStatus(str, Enum):
    """Subscription status signals emitted by a change-event source"""

    SUBSCRIBED = "subscribed"
    ERROR = "error"
    TIMEOUT = "timeout"
    CLOSED = "closed"

    @property
    def is_connected(self) -> bool:
        return self is ConnectionStatus.SUBSCRIBED


class ChangeEvent(BaseModel):
    """
    One change on the case collection.

    For deletes ``record`` may carry nothing but the id of the removed case.
    """

    kind: EventKind
    record: CaseRecord = Field(description="New row for insert/update, old row for delete")

    class Config:
        frozen = True

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'ChangeEvent':
        """Decode a change payload.

        Accepts either the native shape ``{"kind": ..., "record": {...}}`` or the
        realtime shape ``{"eventType": "INSERT", "new": {...}, "old": {...}}``
        where deletes carry the removed row in ``old``.

        Raises:
            ValueError: If the payload has no recognizable event kind
            pydantic.ValidationError: If the record fails validation
        """
        if "kind" in payload:
            kind = EventKind(str(payload["kind"]).lower())
            row = payload.get("record") or {}
        elif "eventType" in payload or "type" in payload:
            kind = EventKind(str(payload.get("eventType") or payload.get("type")).lower())
            if kind is EventKind.DELETE:
                row = payload.get("old") or payload.get("old_record") or {}
            else:
                row = payload.get("new") or payload.get("record") or {}
        else:
            raise ValueError(f"Change payload has no event kind: keys={sorted(payload)}")

        return cls(kind=kind, record=CaseRecord.model_validate(row))
