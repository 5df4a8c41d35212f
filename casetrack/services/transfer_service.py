"""
Report-to-case transfer, composed from the two independent stores.
"""

from typing import Any, Dict, Optional, Tuple

from casetrack.models.entities import Case, Report, ReportStage
from casetrack.services.case_store import CaseStore
from casetrack.services.report_store import ReportStore, case_payload_from_report
from casetrack.utils.logging_config import log_business_event


def transfer_report_to_case(
    report_store: ReportStore, case_store: CaseStore, report_id: str
) -> Optional[Tuple[Report, Case]]:
    """
    Open a case from a stored report and mark the report as prosecuted.

    Returns ``(report, case)``, or None when the report does not exist.
    """
    report = report_store.get(report_id)
    if report is None:
        return None

    case = case_store.add(case_payload_from_report(report))
    report = report_store.transfer_stage(report_id, ReportStage.PROSECUTED)
    log_business_event("report_transferred_to_case", "report", report_id, case_id=case.id)
    return report, case


def prosecute_new_report(case_store: CaseStore, report_form: Dict[str, Any]) -> Case:
    """Open a case straight from report form data that was never saved as a report"""
    case = case_store.add(case_payload_from_report(report_form))
    log_business_event("report_prosecuted_directly", "case", case.id)
    return case
