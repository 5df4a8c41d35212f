"""
Search service for the case and report tables.

This module filters records by a free-text term and by prosecutor, and picks
the record subset behind each table view.
"""

from typing import Dict, List, Optional, Sequence, TypeVar, Union

from casetrack.models.entities import Case, CaseStage, Report, ReportStage
from casetrack.services.case_store import CaseStore
from casetrack.services.report_store import ReportStore

Record = TypeVar("Record", Case, Report)

CASE_VIEWS: Dict[str, Optional[str]] = {
    "all": None,
    "investigation": CaseStage.INVESTIGATION,
    "prosecution": CaseStage.PROSECUTION,
    "trial": CaseStage.TRIAL,
    "expiring": None,
}
REPORT_VIEWS: Dict[str, Optional[str]] = {
    "all": None,
    "pending": ReportStage.PENDING,
    "expiring": None,
}


def _matches_term(record: Union[Case, Report], needle: str) -> bool:
    if needle in (record.name or "").casefold() or needle in (record.charges or "").casefold():
        return True
    for defendant in getattr(record, "defendants", []):
        if needle in (defendant.name or "").casefold() or needle in (defendant.charges or "").casefold():
            return True
    return False


def filter_records(
    records: Sequence[Record], term: Optional[str] = None, prosecutor_id: Optional[str] = None
) -> List[Record]:
    """
    Keep records whose name, charges or any defendant's name/charges contain
    ``term`` (case-insensitive) and whose prosecutor is ``prosecutor_id``.
    Empty filters match everything; store order is preserved.
    """
    needle = (term or "").strip().casefold()
    return [
        record
        for record in records
        if (not needle or _matches_term(record, needle)) and (not prosecutor_id or record.prosecutor == prosecutor_id)
    ]


def cases_for_view(store: CaseStore, view: str) -> List[Case]:
    """Records behind a case table view. Raises KeyError for an unknown view."""
    stage = CASE_VIEWS[view]
    if view == "expiring":
        return store.expiring_soon()
    return store.by_stage(stage) if stage else store.all()


def reports_for_view(store: ReportStore, view: str) -> List[Report]:
    stage = REPORT_VIEWS[view]
    if view == "expiring":
        return store.expiring_soon()
    return store.by_stage(stage) if stage else store.all()
