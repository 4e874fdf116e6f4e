"""
Proposal Ingestion Contracts

Immutable data structures for the proposal ingestion pipeline.

BOUNDARY: Ingestion Layer
All tabular data enters through these contracts.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union
import math

from backend.contracts.base import Error, ErrorCode


# =============================================================================
# INPUT SCHEMA
# =============================================================================

COL_PROPOSAL_ID = "proposal_no"
COL_DATE = "date_submitted"
COL_PI = "PI"
COL_TITLE = "title"
COL_THEME = "theme"
COL_SPONSOR = "sponsor"
COL_CREDIT = "credit"
COL_FIRST = "first"
COL_TOTAL = "total"

REQUIRED_COLUMNS: Tuple[str, ...] = (COL_PROPOSAL_ID, COL_DATE, COL_PI)


# =============================================================================
# DATE CELL (discriminated union)
# =============================================================================

@dataclass(frozen=True)
class DateValue:
    """A native date/datetime cell (e.g. typed xlsx cell)."""
    value: datetime


@dataclass(frozen=True)
class NumberValue:
    """A numeric cell, read as a spreadsheet serial day count."""
    value: float


@dataclass(frozen=True)
class StringValue:
    """A non-empty text cell in an unknown format."""
    value: str


@dataclass(frozen=True)
class EmptyValue:
    """Missing, blank or unusable cell."""
    raw: str = ""


DateCell = Union[DateValue, NumberValue, StringValue, EmptyValue]


def classify_cell(raw: Any) -> DateCell:
    """
    Classify a raw `date_submitted` value.

    This is the only place that inspects the dynamic type of a date cell.
    """
    if raw is None:
        return EmptyValue()
    if isinstance(raw, datetime):
        return DateValue(raw.replace(tzinfo=None))
    if isinstance(raw, date):
        return DateValue(datetime(raw.year, raw.month, raw.day))
    if isinstance(raw, bool):
        return EmptyValue(raw=str(raw))
    if isinstance(raw, (int, float)):
        if math.isnan(raw) or math.isinf(raw):
            return EmptyValue(raw=str(raw))
        return NumberValue(float(raw))
    text = str(raw).strip()
    if not text:
        return EmptyValue()
    return StringValue(text)


def cell_label(cell: DateCell) -> str:
    """Text form of a cell for display and rejection reports."""
    if isinstance(cell, DateValue):
        return cell.value.date().isoformat()
    if isinstance(cell, NumberValue):
        return repr(cell.value) if not cell.value.is_integer() else str(int(cell.value))
    if isinstance(cell, StringValue):
        return cell.value
    return cell.raw


# =============================================================================
# ROW CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class RawProposalRow:
    """One input row after column extraction, before normalization."""
    row_index: int  # 1-based position in the source
    proposal_id: str
    date_cell: DateCell
    pi_name: str
    title: str
    theme: str
    sponsor: str
    credit: Any
    first: Any
    total: Any

    @classmethod
    def from_mapping(cls, row_index: int, row: Mapping[str, Any]) -> RawProposalRow:
        def text(key: str) -> str:
            value = row.get(key)
            if value is None:
                return ""
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            return str(value).strip()

        return cls(
            row_index=row_index,
            proposal_id=text(COL_PROPOSAL_ID),
            date_cell=classify_cell(row.get(COL_DATE)),
            pi_name=text(COL_PI),
            title=text(COL_TITLE),
            theme=text(COL_THEME),
            sponsor=text(COL_SPONSOR),
            credit=row.get(COL_CREDIT),
            first=row.get(COL_FIRST),
            total=row.get(COL_TOTAL),
        )


class RejectReason(Enum):
    """Why a row contributed nothing."""
    UNPARSEABLE_DATE = "unparseable_date"
    YEAR_OUT_OF_RANGE = "year_out_of_range"
    MISSING_PROPOSAL_ID = "missing_proposal_id"


@dataclass(frozen=True)
class RejectedRow:
    """Record of a row that was skipped during normalization."""
    row_index: int
    proposal_id: str
    raw_date: str
    reason: RejectReason
    year: Optional[int] = None

    @property
    def message(self) -> str:
        if self.reason is RejectReason.YEAR_OUT_OF_RANGE:
            return f"Row {self.row_index}: year {self.year} out of range (date_submitted=\"{self.raw_date}\", proposal_no=\"{self.proposal_id}\")"
        if self.reason is RejectReason.MISSING_PROPOSAL_ID:
            return f"Row {self.row_index}: missing proposal_no"
        return f"Row {self.row_index}: cannot parse year (date_submitted=\"{self.raw_date}\", proposal_no=\"{self.proposal_id}\")"

    @property
    def error(self) -> Error:
        return Error.create(
            ErrorCode[self.reason.name],
            self.message,
            row=self.row_index,
            proposal_no=self.proposal_id,
        )

    def to_dict(self) -> dict:
        return {
            'row_index': self.row_index,
            'proposal_id': self.proposal_id,
            'raw_date': self.raw_date,
            'code': self.reason.name,
            'reason': self.reason.value,
            'year': self.year,
            'message': self.message,
        }


# =============================================================================
# LOAD CONTRACTS
# =============================================================================

class LoadStatus(Enum):
    """Status of a dataset load attempt."""
    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    READ_ERROR = "read_error"
    PARSE_ERROR = "parse_error"
    UNSUPPORTED_FORMAT = "unsupported_format"
    STALE = "stale"


@dataclass(frozen=True)
class LoadResult:
    """
    Outcome of acquiring raw rows from a file or URL.

    Failed loads carry no rows and an explicit error.
    """
    source: str
    status: LoadStatus
    rows: Tuple[Mapping[str, Any], ...] = field(default_factory=tuple)
    error: Optional[Error] = None
    generation: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status is LoadStatus.SUCCESS
