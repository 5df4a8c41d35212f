"""
Deadline evaluation for cases and reports.

Two independent rules live here:

- cases in the investigation stage are flagged when the investigation deadline
  or a detained defendant's detention deadline is within the warning window
  (15 days by default) of today, or already past;
- pending reports are flagged once 30 or more days have elapsed since they
  were received.
"""

import copy
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from casetrack.models.entities import Case, CaseStage, Report, ReportStage
from casetrack.utils.dates import add_days, days_elapsed, days_remaining


class DeadlineEvaluator:
    def __init__(
        self,
        warning_days: int = 15,
        overdue_days: int = 30,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.warning_days = warning_days
        self.overdue_days = overdue_days
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    def remaining(self, deadline: str) -> int:
        return days_remaining(deadline, self.now())

    def is_expiring_soon(self, deadline: Optional[str]) -> bool:
        if not deadline:
            return False
        return self.remaining(deadline) <= self.warning_days

    def shortest_detention_days(self, case: Case) -> Optional[int]:
        """Fewest days left on any detained defendant's detention, or None"""
        detained = case.detained_defendants
        if not detained:
            return None
        return min(self.remaining(d.detention_deadline) for d in detained)

    def case_is_expiring(self, case: Case) -> bool:
        if case.stage != CaseStage.INVESTIGATION:
            return False
        if self.is_expiring_soon(case.investigation_deadline):
            return True
        return any(self.is_expiring_soon(d.detention_deadline) for d in case.detained_defendants)

    def report_days_elapsed(self, report: Report) -> Optional[int]:
        if not report.report_date:
            return None
        return days_elapsed(report.report_date, self.now())

    def report_is_overdue(self, report: Report) -> bool:
        if report.stage != ReportStage.PENDING:
            return False
        elapsed = self.report_days_elapsed(report)
        return elapsed is not None and elapsed >= self.overdue_days

    def case_warnings(self, case: Case) -> Dict[str, Any]:
        return {
            "investigation_remaining": self.remaining(case.investigation_deadline)
            if case.investigation_deadline
            else None,
            "shortest_detention_remaining": self.shortest_detention_days(case),
            "expiring_soon": self.case_is_expiring(case),
        }

    def report_warnings(self, report: Report) -> Dict[str, Any]:
        return {
            "days_elapsed": self.report_days_elapsed(report),
            "resolution_remaining": self.remaining(report.resolution_deadline)
            if report.resolution_deadline
            else None,
            "overdue": self.report_is_overdue(report),
        }


def _extended(deadline: Optional[str], days: Optional[int], new_deadline: Optional[str]) -> str:
    if new_deadline:
        return new_deadline
    if days is None or not deadline:
        raise ValueError("Either a new deadline or a number of days on an existing deadline is required")
    return add_days(deadline, days)


def extend_investigation(case: Case, days: Optional[int] = None, new_deadline: Optional[str] = None) -> Case:
    """Return a copy of ``case`` with its investigation deadline extended"""
    updated = copy.deepcopy(case)
    updated.investigation_deadline = _extended(case.investigation_deadline, days, new_deadline)
    return updated


def extend_detention(
    case: Case, defendant_id: str, days: Optional[int] = None, new_deadline: Optional[str] = None
) -> Optional[Case]:
    """
    Return a copy of ``case`` with one defendant's detention extended.

    Returns None when the defendant is not part of the case or is not detained.
    """
    updated = copy.deepcopy(case)
    for defendant in updated.defendants:
        if defendant.id == defendant_id:
            if not defendant.is_detained:
                return None
            defendant.detention_deadline = _extended(defendant.detention_deadline, days, new_deadline)
            return updated
    return None
