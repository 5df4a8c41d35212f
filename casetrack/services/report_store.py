"""
In-memory report collection for one user, mirrored to the persistence port.

Mirrors ``CaseStore``. A report that is prosecuted continues its life as a
case; building that case is left to the caller (see ``transfer_service``) so
this store never reaches into the case store.
"""

import copy
from typing import Any, Dict, List, Optional, Union

from casetrack.models.entities import REPORT_RESOLUTION_STAGES, Report, ReportStage
from casetrack.services.case_store import new_id
from casetrack.services.deadline_service import DeadlineEvaluator
from casetrack.services.persistence import REPORTS_COLLECTION, PersistenceWriter
from casetrack.utils.dates import today
from casetrack.utils.logging_config import get_logger, log_business_event


class ReportStore:
    collection = REPORTS_COLLECTION

    def __init__(
        self,
        writer: PersistenceWriter,
        user_key: str,
        evaluator: Optional[DeadlineEvaluator] = None,
        records: Optional[List[Report]] = None,
    ):
        self.writer = writer
        self.user_key = user_key
        self.evaluator = evaluator or DeadlineEvaluator()
        self._reports: List[Report] = list(records or [])
        self.logger = get_logger("stores.reports")

    @classmethod
    def load(cls, writer: PersistenceWriter, user_key: str, evaluator: Optional[DeadlineEvaluator] = None):
        store = cls(writer, user_key, evaluator)
        for row in writer.load(cls.collection, user_key):
            try:
                store._reports.append(Report.from_dict(row))
            except (TypeError, AttributeError) as e:
                store.logger.warning(
                    "Skipping malformed report record",
                    extra={"event": "report_record_skipped", "error": str(e), "user_key": user_key},
                )
        return store

    def _persist(self) -> None:
        self.writer.persist(self.collection, self.user_key, [r.to_dict() for r in self._reports])

    def _index(self, report_id: str) -> Optional[int]:
        for i, report in enumerate(self._reports):
            if report.id == report_id:
                return i
        return None

    def __len__(self) -> int:
        return len(self._reports)

    def all(self) -> List[Report]:
        return [copy.deepcopy(r) for r in self._reports]

    def get(self, report_id: str) -> Optional[Report]:
        index = self._index(report_id)
        return copy.deepcopy(self._reports[index]) if index is not None else None

    def by_stage(self, stage: str) -> List[Report]:
        return [copy.deepcopy(r) for r in self._reports if r.stage == stage]

    def expiring_soon(self) -> List[Report]:
        """Pending reports received 30 or more days ago"""
        return [copy.deepcopy(r) for r in self._reports if self.evaluator.report_is_overdue(r)]

    def add(self, report_data: Dict[str, Any]) -> Report:
        report = Report(
            id=new_id(),
            name=report_data.get("name", ""),
            charges=report_data.get("charges", ""),
            report_date=report_data.get("report_date") or today(),
            resolution_deadline=report_data.get("resolution_deadline"),
            prosecutor=report_data.get("prosecutor"),
            stage=ReportStage.PENDING,
            created_at=today(),
            notes=report_data.get("notes") or "",
        )
        self._reports.append(report)
        self._persist()
        log_business_event("report_created", "report", report.id)
        return copy.deepcopy(report)

    def update(self, report: Report) -> bool:
        """Replace the stored report with the same id; False when unknown"""
        index = self._index(report.id)
        if index is None:
            self.logger.info(
                "Update of unknown report ignored", extra={"event": "report_not_found", "report_id": report.id}
            )
            return False
        self._reports[index] = copy.deepcopy(report)
        self._persist()
        log_business_event("report_updated", "report", report.id)
        return True

    def delete(self, report_id: str) -> bool:
        index = self._index(report_id)
        if index is None:
            return False
        del self._reports[index]
        self._persist()
        log_business_event("report_deleted", "report", report_id)
        return True

    def transfer_stage(self, report_id: str, new_stage: str) -> Optional[Report]:
        """
        Move a report to ``new_stage``.

        Prosecuted stamps ``prosecution_date``; any non-prosecution outcome
        stamps ``resolution_date``. Existing stamps are never overwritten.
        """
        index = self._index(report_id)
        if index is None:
            return None
        report = self._reports[index]

        previous = report.stage
        report.stage = new_stage
        if new_stage == ReportStage.PROSECUTED and not report.prosecution_date:
            report.prosecution_date = today()
        elif new_stage in REPORT_RESOLUTION_STAGES and not report.resolution_date:
            report.resolution_date = today()

        self._persist()
        log_business_event("report_stage_changed", "report", report_id, from_stage=previous, to_stage=new_stage)
        return copy.deepcopy(report)


def case_payload_from_report(report: Union[Report, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Case-creation payload for a prosecuted report.

    The investigation deadline starts at today and the defendant list is
    empty; both are filled in later through the case workflow.
    """
    data = report.to_dict() if isinstance(report, Report) else report
    return {
        "name": data.get("name", ""),
        "charges": data.get("charges", ""),
        "prosecutor": data.get("prosecutor"),
        "notes": data.get("notes") or "",
        "investigation_deadline": today(),
        "defendants": [],
    }
