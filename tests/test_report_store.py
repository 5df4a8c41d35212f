"""
Tests for the report store and the report-to-case transfer.
"""

import pytest

from casetrack.models.entities import CaseStage, Report, ReportStage
from casetrack.services.case_store import CaseStore
from casetrack.services.report_store import ReportStore, case_payload_from_report
from casetrack.services.transfer_service import prosecute_new_report, transfer_report_to_case

USER = "clerk@example.org"


@pytest.fixture
def reports(writer, evaluator):
    return ReportStore.load(writer, USER, evaluator)


@pytest.fixture
def cases(writer, evaluator):
    return CaseStore.load(writer, USER, evaluator)


def report_form(**overrides):
    data = {
        "name": "Break-in at the market",
        "charges": "Article 173 - Theft of property",
        "report_date": "20/04/2024",
        "resolution_deadline": "20/06/2024",
        "prosecutor": "p-1",
        "notes": "Reported by the owner",
    }
    data.update(overrides)
    return data


def test_add_starts_pending(reports):
    report = reports.add(report_form())
    assert report.id
    assert report.stage == ReportStage.PENDING
    assert report.prosecution_date is None
    assert report.resolution_date is None


def test_update_and_delete(reports):
    report = reports.add(report_form())
    report.notes = "Witness statement attached"
    assert reports.update(report) is True
    assert reports.get(report.id).notes == "Witness statement attached"

    assert reports.delete(report.id) is True
    assert reports.delete(report.id) is False
    assert reports.update(report) is False


def test_prosecuted_stamps_prosecution_date(reports, monkeypatch):
    monkeypatch.setattr("casetrack.services.report_store.today", lambda: "03/05/2024")
    report = reports.add(report_form())
    moved = reports.transfer_stage(report.id, ReportStage.PROSECUTED)
    assert moved.prosecution_date == "03/05/2024"
    assert moved.resolution_date is None


@pytest.mark.parametrize(
    "stage", [ReportStage.NOT_PROSECUTED, ReportStage.TEMPORARILY_SUSPENDED, ReportStage.TRANSFERRED]
)
def test_other_outcomes_stamp_resolution_date(reports, monkeypatch, stage):
    monkeypatch.setattr("casetrack.services.report_store.today", lambda: "03/05/2024")
    report = reports.add(report_form())
    moved = reports.transfer_stage(report.id, stage)
    assert moved.resolution_date == "03/05/2024"
    assert moved.prosecution_date is None


def test_resolution_date_is_not_overwritten(reports, monkeypatch):
    monkeypatch.setattr("casetrack.services.report_store.today", lambda: "03/05/2024")
    report = reports.add(report_form())
    reports.transfer_stage(report.id, ReportStage.TEMPORARILY_SUSPENDED)

    monkeypatch.setattr("casetrack.services.report_store.today", lambda: "01/06/2024")
    moved = reports.transfer_stage(report.id, ReportStage.NOT_PROSECUTED)
    assert moved.resolution_date == "03/05/2024"


def test_expiring_soon_lists_overdue_pending_reports(reports):
    reports.add(report_form(name="Old", report_date="01/04/2024"))
    reports.add(report_form(name="Recent", report_date="25/04/2024"))
    resolved = reports.add(report_form(name="Resolved", report_date="01/03/2024"))
    reports.transfer_stage(resolved.id, ReportStage.NOT_PROSECUTED)

    assert [r.name for r in reports.expiring_soon()] == ["Old"]


def test_case_payload_from_report(monkeypatch):
    monkeypatch.setattr("casetrack.services.report_store.today", lambda: "01/05/2024")
    report = Report(id="r1", name="Fraud report", charges="Article 174", report_date="01/04/2024", prosecutor="p-2")
    payload = case_payload_from_report(report)
    assert payload == {
        "name": "Fraud report",
        "charges": "Article 174",
        "prosecutor": "p-2",
        "notes": "",
        "investigation_deadline": "01/05/2024",
        "defendants": [],
    }


def test_transfer_report_to_case(reports, cases):
    report = reports.add(report_form())
    result = transfer_report_to_case(reports, cases, report.id)
    assert result is not None
    moved, case = result

    assert moved.stage == ReportStage.PROSECUTED
    assert moved.prosecution_date
    assert case.name == "Break-in at the market"
    assert case.charges == "Article 173 - Theft of property"
    assert case.prosecutor == "p-1"
    assert case.notes == "Reported by the owner"
    assert case.stage == CaseStage.INVESTIGATION
    assert case.defendants == []
    assert len(cases) == 1


def test_transfer_unknown_report(reports, cases):
    assert transfer_report_to_case(reports, cases, "missing") is None
    assert len(cases) == 0


def test_prosecute_new_report_creates_only_a_case(reports, cases):
    case = prosecute_new_report(cases, report_form())
    assert cases.get(case.id) is not None
    assert len(reports) == 0
