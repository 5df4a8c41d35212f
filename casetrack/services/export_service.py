"""
Tab-separated export of case and report tables.

The file layout is the one spreadsheet tools open without an import dialog:
UTF-8 with a byte-order mark, a header row of column labels, one record per
line, tab between cells. Column sets follow the table views; the ``actions``
column exists only on screen and is never written.
"""

from collections import namedtuple
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from casetrack.models.entities import Case, Prosecutor, Report
from casetrack.services.deadline_service import DeadlineEvaluator
from casetrack.utils.helpers import format_days, resolve_prosecutor_name, single_line
from casetrack.utils.logging_config import get_logger

logger = get_logger("export")

BOM = "\ufeff"
ACTIONS_KEY = "actions"

Column = namedtuple("Column", ["key", "label"])

ACTIONS = Column(ACTIONS_KEY, "Actions")
CASE_NAME = Column("name", "Case name")
REPORT_NAME = Column("name", "Report name")
CHARGES = Column("charges", "Charges")
INVESTIGATION_DEADLINE = Column("investigation_deadline", "Investigation deadline")
TOTAL_DEFENDANTS = Column("total_defendants", "Total defendants")
SHORTEST_DETENTION = Column("shortest_detention", "Shortest detention")
PROSECUTOR = Column("prosecutor", "Prosecutor")
NOTES = Column("notes", "Notes")
STAGE = Column("stage", "Stage")
PROSECUTION_TRANSFER_DATE = Column("prosecution_transfer_date", "Transferred to prosecution")
TRIAL_TRANSFER_DATE = Column("trial_transfer_date", "Transferred to trial")
INVESTIGATION_REMAINING = Column("investigation_remaining", "Investigation time remaining")
SHORTEST_DETENTION_REMAINING = Column("shortest_detention_remaining", "Shortest detention remaining")
RESOLUTION_DEADLINE = Column("resolution_deadline", "Resolution deadline")
REPORT_DATE = Column("report_date", "Report date")
REPORT_STATUS = Column("stage", "Status")

CASE_COLUMNS: Dict[str, List[Column]] = {
    "all": [
        CASE_NAME,
        CHARGES,
        INVESTIGATION_DEADLINE,
        TOTAL_DEFENDANTS,
        SHORTEST_DETENTION,
        PROSECUTOR,
        NOTES,
        STAGE,
        PROSECUTION_TRANSFER_DATE,
        TRIAL_TRANSFER_DATE,
        ACTIONS,
    ],
    "investigation": [
        CASE_NAME,
        INVESTIGATION_DEADLINE,
        TOTAL_DEFENDANTS,
        SHORTEST_DETENTION,
        PROSECUTOR,
        NOTES,
        ACTIONS,
    ],
    "prosecution": [
        CASE_NAME,
        TOTAL_DEFENDANTS,
        SHORTEST_DETENTION,
        PROSECUTOR,
        NOTES,
        PROSECUTION_TRANSFER_DATE,
        ACTIONS,
    ],
    "trial": [CASE_NAME, TOTAL_DEFENDANTS, SHORTEST_DETENTION, PROSECUTOR, NOTES, TRIAL_TRANSFER_DATE, ACTIONS],
    "expiring": [
        CASE_NAME,
        STAGE,
        INVESTIGATION_REMAINING,
        TOTAL_DEFENDANTS,
        SHORTEST_DETENTION_REMAINING,
        PROSECUTOR,
        NOTES,
        ACTIONS,
    ],
}

REPORT_COLUMNS: Dict[str, List[Column]] = {
    "all": [REPORT_NAME, CHARGES, REPORT_DATE, RESOLUTION_DEADLINE, PROSECUTOR, NOTES, REPORT_STATUS, ACTIONS],
    "pending": [REPORT_NAME, CHARGES, REPORT_DATE, RESOLUTION_DEADLINE, PROSECUTOR, NOTES, ACTIONS],
    "expiring": [REPORT_NAME, CHARGES, REPORT_DATE, RESOLUTION_DEADLINE, PROSECUTOR, NOTES, ACTIONS],
}


class ExportError(Exception):
    """Raised when there is nothing to export or the view is unknown"""


def exportable(columns: Iterable[Column]) -> List[Column]:
    return [column for column in columns if column.key != ACTIONS_KEY]


def export_records(rows: Sequence[Dict[str, Any]], columns: Sequence[Column]) -> bytes:
    """
    Render ``rows`` (dicts keyed by column key) as a tab-separated document.

    Raises ExportError for an empty row set.
    """
    if not rows:
        raise ExportError("No data to export")

    columns = exportable(columns)
    lines = ["\t".join(single_line(column.label) for column in columns)]
    for row in rows:
        lines.append("\t".join(single_line(row.get(column.key)) for column in columns))
    return (BOM + "\n".join(lines)).encode("utf-8")


def export_filename(kind: str, on: Optional[date] = None) -> str:
    """``cases-2024-05-31.txt`` style download name"""
    return f"{kind}-{(on or date.today()).isoformat()}.txt"


def case_row(case: Case, evaluator: DeadlineEvaluator, prosecutors: Sequence[Prosecutor]) -> Dict[str, Any]:
    """Flatten a case into export cells, derived columns included"""
    row = case.to_dict()
    shortest = evaluator.shortest_detention_days(case)
    row.update(
        {
            "prosecutor": resolve_prosecutor_name(prosecutors, case.prosecutor),
            "total_defendants": len(case.defendants),
            "shortest_detention": format_days(shortest),
            "shortest_detention_remaining": format_days(shortest),
            "investigation_remaining": format_days(
                evaluator.remaining(case.investigation_deadline) if case.investigation_deadline else None
            ),
        }
    )
    return row


def report_row(report: Report, evaluator: DeadlineEvaluator, prosecutors: Sequence[Prosecutor]) -> Dict[str, Any]:
    row = report.to_dict()
    row["prosecutor"] = resolve_prosecutor_name(prosecutors, report.prosecutor)
    return row


def _export(
    kind: str,
    records: Sequence[Any],
    view: str,
    column_sets: Dict[str, List[Column]],
    to_row: Callable[[Any, DeadlineEvaluator, Sequence[Prosecutor]], Dict[str, Any]],
    evaluator: DeadlineEvaluator,
    prosecutors: Sequence[Prosecutor],
) -> bytes:
    if view not in column_sets:
        raise ExportError(f"Unknown {kind} view: {view}")
    rows = [to_row(record, evaluator, prosecutors) for record in records]
    payload = export_records(rows, column_sets[view])
    logger.info(
        f"Exported {len(rows)} {kind}",
        extra={"event": "records_exported", "kind": kind, "view": view, "count": len(rows), "bytes": len(payload)},
    )
    return payload


def export_cases(
    cases: Sequence[Case],
    view: str = "all",
    evaluator: Optional[DeadlineEvaluator] = None,
    prosecutors: Sequence[Prosecutor] = (),
) -> bytes:
    return _export("cases", cases, view, CASE_COLUMNS, case_row, evaluator or DeadlineEvaluator(), prosecutors)


def export_reports(
    reports: Sequence[Report],
    view: str = "all",
    evaluator: Optional[DeadlineEvaluator] = None,
    prosecutors: Sequence[Prosecutor] = (),
) -> bytes:
    return _export(
        "reports", reports, view, REPORT_COLUMNS, report_row, evaluator or DeadlineEvaluator(), prosecutors
    )
