"""
Tests for deadline evaluation and deadline extension.
"""

import pytest

from casetrack.models.entities import Case, CaseStage, Defendant, PreventiveMeasure, Report, ReportStage
from casetrack.services.deadline_service import DeadlineEvaluator, extend_detention, extend_investigation


def make_case(deadline="30/06/2024", stage=CaseStage.INVESTIGATION, defendants=None):
    return Case(
        id="case-1",
        name="Le Van B - Article 173",
        charges="Article 173 - Theft of property",
        investigation_deadline=deadline,
        stage=stage,
        defendants=defendants or [],
    )


def detained(defendant_id, deadline):
    return Defendant(
        id=defendant_id,
        name=f"Defendant {defendant_id}",
        preventive_measure=PreventiveMeasure.DETAINED,
        detention_deadline=deadline,
    )


def make_report(report_date, stage=ReportStage.PENDING):
    return Report(id="report-1", name="Burglary report", charges="Theft", report_date=report_date, stage=stage)


def test_investigation_deadline_inside_window(evaluator):
    assert evaluator.case_is_expiring(make_case("16/05/2024"))
    assert not evaluator.case_is_expiring(make_case("17/05/2024"))


def test_overdue_investigation_still_flags(evaluator):
    assert evaluator.case_is_expiring(make_case("01/04/2024"))


def test_detention_deadline_flags_case(evaluator):
    case = make_case("30/07/2024", defendants=[detained("d1", "10/05/2024")])
    assert evaluator.case_is_expiring(case)


def test_at_large_defendant_never_flags(evaluator):
    defendant = Defendant(
        id="d1", name="Tran C", preventive_measure=PreventiveMeasure.AT_LARGE, detention_deadline="02/05/2024"
    )
    assert defendant.detention_deadline is None
    assert not evaluator.case_is_expiring(make_case("30/07/2024", defendants=[defendant]))


@pytest.mark.parametrize(
    "stage", [CaseStage.PROSECUTION, CaseStage.TRIAL, CaseStage.COMPLETED, CaseStage.TEMPORARILY_SUSPENDED]
)
def test_only_investigation_stage_flags(evaluator, stage):
    case = make_case("01/04/2024", stage=stage, defendants=[detained("d1", "02/05/2024")])
    assert not evaluator.case_is_expiring(case)


def test_shortest_detention(evaluator):
    case = make_case(defendants=[detained("d1", "20/05/2024"), detained("d2", "05/05/2024")])
    assert evaluator.shortest_detention_days(case) == 4
    assert evaluator.shortest_detention_days(make_case()) is None


def test_case_warnings(evaluator):
    warnings = evaluator.case_warnings(make_case("11/05/2024", defendants=[detained("d1", "05/05/2024")]))
    assert warnings == {"investigation_remaining": 10, "shortest_detention_remaining": 4, "expiring_soon": True}


def test_report_overdue_after_thirty_days(evaluator):
    assert evaluator.report_is_overdue(make_report("02/04/2024"))
    assert not evaluator.report_is_overdue(make_report("03/04/2024"))


def test_resolved_report_is_never_overdue(evaluator):
    assert not evaluator.report_is_overdue(make_report("01/01/2024", stage=ReportStage.NOT_PROSECUTED))


def test_report_warnings(evaluator):
    report = make_report("02/04/2024")
    report.resolution_deadline = "06/05/2024"
    assert evaluator.report_warnings(report) == {"days_elapsed": 30, "resolution_remaining": 5, "overdue": True}


def test_custom_windows(now):
    strict = DeadlineEvaluator(warning_days=3, overdue_days=10, clock=lambda: now)
    assert not strict.case_is_expiring(make_case("10/05/2024"))
    assert strict.report_is_overdue(make_report("20/04/2024"))


def test_extend_investigation_returns_copy():
    case = make_case("30/06/2024")
    extended = extend_investigation(case, days=30)
    assert extended.investigation_deadline == "30/07/2024"
    assert case.investigation_deadline == "30/06/2024"

    assert extend_investigation(case, new_deadline="15/08/2024").investigation_deadline == "15/08/2024"


def test_extend_detention():
    case = make_case(defendants=[detained("d1", "10/05/2024")])
    extended = extend_detention(case, "d1", days=60)
    assert extended.defendants[0].detention_deadline == "09/07/2024"
    assert case.defendants[0].detention_deadline == "10/05/2024"


def test_extend_detention_requires_detained_defendant():
    at_large = Defendant(id="d2", name="Pham D")
    case = make_case(defendants=[at_large])
    assert extend_detention(case, "d2", days=10) is None
    assert extend_detention(case, "missing", days=10) is None


def test_extension_needs_days_or_date():
    with pytest.raises(ValueError):
        extend_investigation(make_case())
