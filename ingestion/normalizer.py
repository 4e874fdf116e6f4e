"""
Proposal Normalizer
===================

Converts raw tabular rows into grouped Proposal entities.

GUARANTEES:
- Every row is either folded into a Proposal or recorded as rejected
- Rows sharing a proposal id merge; the first-seen row is canonical
- Numeric fields never fail: unparseable amounts normalize to 0
- Same rows in, identical proposals out
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import math
import re

from dateutil import parser as dateutil_parser

from backend.contracts.proposals import PIContribution, Proposal
from .contracts import (
    DateCell, DateValue, NumberValue, StringValue, EmptyValue,
    RawProposalRow, RejectedRow, RejectReason, cell_label,
)


# Spreadsheet serial day 0 (accounts for the 1900 leap-year bug)
SERIAL_EPOCH = datetime(1899, 12, 30)

_YEAR_FIRST = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_YEAR_LAST = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$")
_YEAR_TOKEN = re.compile(r"\b(?:19|20)\d{2}\b")
_AMOUNT_STRIP = re.compile(r"[\s,$€£¥₹]")
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class NormalizerConfig:
    """Configuration for row normalization."""
    min_year: int = 1900
    max_year: int = 2100
    default_theme: str = "Other"
    unknown_pi_name: str = "Unknown"
    # Fields missing from a generically parsed string are taken from here
    generic_parse_default: datetime = datetime(1900, 1, 1)
    # Recover a precise date from YYYY-MM-DD / MM-DD-YYYY strings
    recover_pattern_dates: bool = True


@dataclass(frozen=True)
class DateResolution:
    """Outcome of resolving one date cell."""
    year: Optional[int]
    date: Optional[datetime] = None
    strategy: str = "none"

    @property
    def resolved(self) -> bool:
        return self.year is not None


def _safe_date(year: int, month: int, day: int) -> Optional[datetime]:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def _generic_parse(text: str, default: datetime) -> Optional[datetime]:
    """
    Parse free-form text, accepting it only when the text names its own year.

    dateutil fills missing fields from `default`, so the text is parsed
    against two defaults a year apart; a year that follows the default
    did not come from the input.
    """
    shifted = default.replace(year=default.year + 1, day=min(default.day, 28))
    try:
        parsed = dateutil_parser.parse(text, default=default)
        alternate = dateutil_parser.parse(text, default=shifted)
    except (ValueError, OverflowError):
        return None
    if parsed.year != alternate.year:
        return None
    return parsed.replace(tzinfo=None)


def resolve_date(cell: DateCell, config: Optional[NormalizerConfig] = None) -> DateResolution:
    """
    Resolve a date cell to a year and, where possible, a precise date.

    Strategies are attempted in a fixed order; the first success wins.
    """
    config = config or NormalizerConfig()

    if isinstance(cell, DateValue):
        return DateResolution(year=cell.value.year, date=cell.value, strategy="native")

    if isinstance(cell, NumberValue):
        try:
            resolved = SERIAL_EPOCH + timedelta(days=cell.value)
        except (OverflowError, ValueError):
            return DateResolution(year=None, strategy="serial")
        return DateResolution(year=resolved.year, date=resolved, strategy="serial")

    if isinstance(cell, EmptyValue):
        return DateResolution(year=None)

    text = cell.value

    match = _YEAR_FIRST.match(text)
    if match:
        year = int(match.group(1))
        precise = None
        if config.recover_pattern_dates:
            precise = _safe_date(year, int(match.group(2)), int(match.group(3)))
        return DateResolution(year=year, date=precise, strategy="year_first")

    match = _YEAR_LAST.match(text)
    if match:
        year = int(match.group(3))
        precise = None
        if config.recover_pattern_dates:
            precise = _safe_date(year, int(match.group(1)), int(match.group(2)))
        return DateResolution(year=year, date=precise, strategy="year_last")

    parsed = _generic_parse(text, config.generic_parse_default)
    if parsed is not None:
        return DateResolution(year=parsed.year, date=parsed, strategy="generic")

    token = _YEAR_TOKEN.search(text)
    if token:
        return DateResolution(year=int(token.group(0)), strategy="year_token")

    return DateResolution(year=None)


def parse_amount(value: Any) -> float:
    """
    Parse a numeric-like field.

    Strips currency symbols, commas and whitespace, then reads the longest
    leading float. Empty or unparseable input is 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    cleaned = _AMOUNT_STRIP.sub("", str(value))
    match = _FLOAT_PREFIX.match(cleaned)
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


# =============================================================================
# REPORT
# =============================================================================

@dataclass
class NormalizationReport:
    """
    Complete report of the normalization pass.

    TRACEABLE:
    Every input row results in exactly one of:
    - A contribution inside one of `proposals`
    - An entry in `rejected_rows` (in input order)
    """
    processed_count: int = 0
    proposals: Tuple[Proposal, ...] = ()
    rejected_rows: List[RejectedRow] = field(default_factory=list)
    strategy_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return self.processed_count - len(self.rejected_rows)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected_rows)

    @property
    def is_empty(self) -> bool:
        return not self.proposals

    def to_dict(self) -> dict:
        return {
            'processed_count': self.processed_count,
            'success_count': self.success_count,
            'rejected_count': self.rejected_count,
            'proposal_count': len(self.proposals),
            'strategy_counts': dict(sorted(self.strategy_counts.items())),
            'rejected_rows': [r.to_dict() for r in self.rejected_rows],
        }


# =============================================================================
# NORMALIZER
# =============================================================================

@dataclass
class _ProposalDraft:
    proposal_id: str
    title: str
    theme: str
    sponsor: str
    year: int
    date: Optional[datetime]
    date_label: str
    contributions: List[PIContribution] = field(default_factory=list)

    def freeze(self) -> Proposal:
        return Proposal(
            proposal_id=self.proposal_id,
            title=self.title,
            theme=self.theme,
            sponsor=self.sponsor,
            year=self.year,
            date=self.date,
            date_label=self.date_label,
            contributions=tuple(self.contributions),
        )


class ProposalNormalizer:
    """
    Normalizes raw rows into Proposals.

    NO INTERPRETATION:
    - Does not dedupe PIs within a proposal
    - Does not reconcile conflicting dates across rows of one proposal
    - Does not fill missing years
    """

    def __init__(self, config: Optional[NormalizerConfig] = None):
        self._config = config or NormalizerConfig()

    @property
    def config(self) -> NormalizerConfig:
        return self._config

    def normalize(self, rows: Iterable[Mapping[str, Any]]) -> NormalizationReport:
        """
        Normalize a complete set of raw rows.

        Returns:
            NormalizationReport with proposals (first-seen order) and rejected rows
        """
        report = NormalizationReport()
        drafts: Dict[str, _ProposalDraft] = {}

        for index, row in enumerate(rows, start=1):
            report.processed_count += 1
            raw = RawProposalRow.from_mapping(index, row)
            rejected = self._fold_row(raw, drafts, report)
            if rejected is not None:
                report.rejected_rows.append(rejected)

        report.proposals = tuple(d.freeze() for d in drafts.values())
        return report

    def _fold_row(
        self,
        raw: RawProposalRow,
        drafts: Dict[str, _ProposalDraft],
        report: NormalizationReport,
    ) -> Optional[RejectedRow]:
        label = cell_label(raw.date_cell)

        if not raw.proposal_id:
            return RejectedRow(
                row_index=raw.row_index,
                proposal_id="",
                raw_date=label,
                reason=RejectReason.MISSING_PROPOSAL_ID,
            )

        resolution = resolve_date(raw.date_cell, self._config)
        if not resolution.resolved:
            return RejectedRow(
                row_index=raw.row_index,
                proposal_id=raw.proposal_id,
                raw_date=label,
                reason=RejectReason.UNPARSEABLE_DATE,
            )

        if not self._config.min_year <= resolution.year <= self._config.max_year:
            return RejectedRow(
                row_index=raw.row_index,
                proposal_id=raw.proposal_id,
                raw_date=label,
                reason=RejectReason.YEAR_OUT_OF_RANGE,
                year=resolution.year,
            )

        report.strategy_counts[resolution.strategy] = report.strategy_counts.get(resolution.strategy, 0) + 1

        draft = drafts.get(raw.proposal_id)
        if draft is None:
            draft = _ProposalDraft(
                proposal_id=raw.proposal_id,
                title=raw.title,
                theme=raw.theme or self._config.default_theme,
                sponsor=raw.sponsor,
                year=resolution.year,
                date=resolution.date,
                date_label=label,
            )
            drafts[raw.proposal_id] = draft

        draft.contributions.append(PIContribution(
            name=raw.pi_name or self._config.unknown_pi_name,
            credit=parse_amount(raw.credit),
            first=parse_amount(raw.first),
            total=parse_amount(raw.total),
        ))
        return None
