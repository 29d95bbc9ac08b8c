"""Case record model - normalized shape of one corruption case.

This module defines the record consumed by scoring and aggregation. Rows read
from the data store (table ``corruption_cases``) are validated into
``CaseRecord`` instances; only the columns aggregation needs are modeled and
every other column is ignored.

Key Models:
- CaseRecord: One tracked corruption case (immutable)
- StatusCategory: Heuristic pending / ongoing / closed classification
- GovernmentLevel: Known administrative levels
- TimeField: Timestamp columns usable as a time-series axis

Architecture:
- Explicit optional fields instead of open row maps
- Store column names accepted as aliases (``estimated_losses_idr`` etc.)
- Malformed rows are skipped by ``parse_case_rows`` and never abort a pass
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from cm_core_lib.exceptions import MalformedRecordError
from cm_core_lib.models.common import blank_timestamp_to_none, ensure_utc

logger = logging.getLogger(__name__)


# ============================================================
# Classification Enums
# ============================================================

class StatusCategory(str, Enum):
    """
    Coarse lifecycle bucket derived from the free-text ``case_status``.

    Classification (lowercase substring match, first rule wins):
      "pending" | "investigation"  → PENDING
      "closed"  | "completed"      → CLOSED
      anything else, or missing    → ONGOING

    Every case falls in exactly one bucket, so
    pending + closed + ongoing == total.
    """

    PENDING = "pending"
    ONGOING = "ongoing"
    CLOSED = "closed"

    @staticmethod
    def classify(case_status: Optional[str]) -> 'StatusCategory':
        """Classify a free-text status into a StatusCategory"""
        if not case_status:
            return StatusCategory.ONGOING

        status = case_status.lower()
        if "pending" in status or "investigation" in status:
            return StatusCategory.PENDING
        if "closed" in status or "completed" in status:
            return StatusCategory.CLOSED
        return StatusCategory.ONGOING


class GovernmentLevel(str, Enum):
    """Administrative level of the institution involved in a case"""

    NATIONAL = "national"
    PROVINCIAL = "provincial"
    REGENCY = "regency"
    CITY = "city"
    DISTRICT = "district"
    VILLAGE = "village"

    @staticmethod
    def parse(value: Optional[str]) -> Optional['GovernmentLevel']:
        """Case-insensitive lookup; unknown or missing values return None"""
        if not value:
            return None
        try:
            return GovernmentLevel(value.strip().lower())
        except ValueError:
            return None


class TimeField(str, Enum):
    """Timestamp columns that can drive time-series bucketing"""

    PUBLISHED_DATE = "published_date"
    INCIDENT_START_DATE = "incident_start_date"
    CREATED_AT = "created_at"
    VERDICT_DATE = "verdict_date"


# ============================================================
# Case Record
# ============================================================

class CaseRecord(BaseModel):
    """
    One corruption case as consumed by scoring and aggregation.

    Monetary amounts are integers in the smallest currency unit (IDR). When a
    case touches several regions the amounts are still the case's own totals;
    regional rollups divide them equally across regions.
    """

    id: Optional[str] = Field(
        default=None,
        description="Opaque unique identifier. Records without one are skipped by aggregation"
    )

    title: Optional[str] = Field(
        default=None,
        description="Headline of the case"
    )

    excerpt: Optional[str] = Field(
        default=None,
        description="Short free-text summary"
    )

    # ============================================================
    # Timestamps (aware, UTC)
    # ============================================================
    created_at: Optional[datetime] = Field(
        default=None,
        description="When the case was recorded; drives month/year counters"
    )

    published_date: Optional[datetime] = Field(
        default=None,
        description="When the source article was published"
    )

    incident_start_date: Optional[datetime] = Field(
        default=None,
        description="When the alleged corruption began"
    )

    verdict_date: Optional[datetime] = Field(
        default=None,
        description="When a court verdict was issued"
    )

    # ============================================================
    # Monetary Amounts
    # ============================================================
    estimated_losses: Optional[int] = Field(
        default=None,
        ge=0,
        alias="estimated_losses_idr",
        description="Estimated state losses (IDR)"
    )

    asset_recovery: Optional[int] = Field(
        default=None,
        ge=0,
        alias="asset_recovery_idr",
        description="Assets recovered so far (IDR)"
    )

    # ============================================================
    # Classification
    # ============================================================
    severity_score: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=10.0,
        alias="corruption_severity_score",
        description="Precomputed 0-10 severity; derivable via SeverityScorer when absent"
    )

    case_status: Optional[str] = Field(
        default=None,
        description="Free-text legal status (e.g. 'investigation', 'trial', 'convicted')"
    )

    government_level: Optional[str] = Field(
        default=None,
        description="national | provincial | regency | city | district | village"
    )

    corruption_type: List[str] = Field(
        default_factory=list,
        description="Category labels, in source order"
    )

    sector: Optional[str] = Field(
        default=None,
        description="Economic or administrative sector"
    )

    regions_affected: List[str] = Field(
        default_factory=list,
        description="Region labels, in source order"
    )

    class Config:
        frozen = True  # Immutable once created
        populate_by_name = True

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> Optional[str]:
        """Accept integer ids; blank ids count as missing"""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator(
        'created_at', 'published_date', 'incident_start_date', 'verdict_date',
        mode='before'
    )
    @classmethod
    def clean_timestamps(cls, v: Any) -> Any:
        return blank_timestamp_to_none(v)

    @field_validator(
        'created_at', 'published_date', 'incident_start_date', 'verdict_date'
    )
    @classmethod
    def timestamps_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @field_validator('estimated_losses', 'asset_recovery', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        """Numeric columns may arrive as floats; amounts are whole units"""
        if isinstance(v, float):
            return int(round(v))
        return v

    @field_validator('corruption_type', 'regions_affected', mode='before')
    @classmethod
    def null_list_to_empty(cls, v: Any) -> Any:
        if v is None:
            return []
        return v

    @field_validator('corruption_type', 'regions_affected')
    @classmethod
    def drop_blank_labels(cls, v: List[str]) -> List[str]:
        return [label for label in v if label and label.strip()]

    # ============================================================
    # Computed Properties
    # ============================================================
    @property
    def status_category(self) -> StatusCategory:
        """Pending / ongoing / closed bucket for this case"""
        return StatusCategory.classify(self.case_status)

    @property
    def level(self) -> Optional[GovernmentLevel]:
        """Parsed government level, None when unknown"""
        return GovernmentLevel.parse(self.government_level)

    def timestamp_for(self, time_field: TimeField) -> Optional[datetime]:
        """Return the timestamp stored in ``time_field``"""
        return getattr(self, TimeField(time_field).value)

    # ============================================================
    # Row Parsing
    # ============================================================
    @classmethod
    def from_row(cls, row: Dict[str, Any], strict: bool = False) -> Optional['CaseRecord']:
        """Build a CaseRecord from a data-store row.

        Args:
            row: Mapping keyed by store column names (or model field names)
            strict: Raise instead of returning None on malformed input

        Returns:
            CaseRecord, or None when the row is malformed and strict is False

        Raises:
            MalformedRecordError: If strict and the row fails validation
        """
        try:
            return cls.model_validate(row)
        except ValidationError as e:
            row_id = row.get("id") if isinstance(row, dict) else None
            if strict:
                raise MalformedRecordError(
                    f"Malformed case row (id={row_id}): {e.error_count()} validation error(s)",
                    row=row if isinstance(row, dict) else None,
                ) from e
            logger.warning(f"Skipping malformed case row (id={row_id}): {e.errors()[0]['msg']}")
            return None


def parse_case_rows(rows: Iterable[Dict[str, Any]]) -> List[CaseRecord]:
    """Normalize raw rows into CaseRecords, skipping malformed ones.

    Args:
        rows: Iterable of data-store rows

    Returns:
        List of valid CaseRecords in input order
    """
    records = []
    skipped = 0

    for row in rows:
        record = CaseRecord.from_row(row)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed row(s) out of {len(records) + skipped}")

    return records
