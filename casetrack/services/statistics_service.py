"""
Dashboard counts for a workspace.
"""

from typing import Any, Dict

from casetrack.models.entities import CASE_STAGES, REPORT_STAGES
from casetrack.services.workspace import Workspace


def case_statistics(workspace: Workspace) -> Dict[str, Any]:
    cases = workspace.cases.all()
    by_stage = {stage: 0 for stage in CASE_STAGES}
    detained = 0
    for case in cases:
        by_stage[case.stage] = by_stage.get(case.stage, 0) + 1
        detained += sum(1 for d in case.defendants if d.is_detained)

    return {
        "total": len(cases),
        "by_stage": by_stage,
        "expiring": len(workspace.cases.expiring_soon()),
        "detained_defendants": detained,
    }


def report_statistics(workspace: Workspace) -> Dict[str, Any]:
    reports = workspace.reports.all()
    by_stage = {stage: 0 for stage in REPORT_STAGES}
    for report in reports:
        by_stage[report.stage] = by_stage.get(report.stage, 0) + 1

    return {
        "total": len(reports),
        "by_stage": by_stage,
        "overdue": len(workspace.reports.expiring_soon()),
    }


def get_dashboard_statistics(workspace: Workspace) -> Dict[str, Any]:
    return {"cases": case_statistics(workspace), "reports": report_statistics(workspace)}
