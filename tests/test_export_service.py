"""
Tests for the tab-separated export.
"""

from datetime import date

import pytest

from casetrack.models.entities import Case, CaseStage, Defendant, PreventiveMeasure, Prosecutor, Report, ReportStage
from casetrack.services.export_service import (
    ACTIONS,
    BOM,
    CASE_COLUMNS,
    Column,
    ExportError,
    export_cases,
    export_filename,
    export_records,
    export_reports,
)

PROSECUTORS = [Prosecutor(id="p1", name="Vo Thi Lan", title="Chief Prosecutor")]


def decode(payload):
    text = payload.decode("utf-8")
    assert text.startswith(BOM)
    return [line.split("\t") for line in text[len(BOM):].split("\n")]


def sample_case():
    return Case(
        id="c1",
        name="Nguyen Van A - Article 173",
        charges="Article 173 - Theft of property",
        investigation_deadline="11/05/2024",
        prosecutor="p1",
        stage=CaseStage.INVESTIGATION,
        defendants=[
            Defendant(id="d1", name="Nguyen Van A"),
            Defendant(
                id="d2",
                name="Tran Thi B",
                preventive_measure=PreventiveMeasure.DETAINED,
                detention_deadline="05/05/2024",
            ),
        ],
        notes="Line one\nline\ttwo",
    )


def test_export_records_layout():
    columns = [Column("name", "Name"), Column("notes", "Notes"), ACTIONS]
    rows = decode(export_records([{"name": "A", "notes": None}, {"name": "B", "notes": "x"}], columns))
    assert rows == [["Name", "Notes"], ["A", ""], ["B", "x"]]


def test_export_records_rejects_empty_set():
    with pytest.raises(ExportError, match="No data to export"):
        export_records([], [Column("name", "Name")])


def test_all_cases_view(evaluator):
    header, row = decode(export_cases([sample_case()], "all", evaluator, PROSECUTORS))
    assert "Actions" not in header
    assert len(header) == len(CASE_COLUMNS["all"]) - 1

    cells = dict(zip(header, row))
    assert cells["Case name"] == "Nguyen Van A - Article 173"
    assert cells["Prosecutor"] == "Vo Thi Lan"
    assert cells["Total defendants"] == "2"
    assert cells["Shortest detention"] == "4 days"
    assert cells["Notes"] == "Line one line two"
    assert cells["Transferred to prosecution"] == ""


def test_expiring_view_derives_remaining_time(evaluator):
    header, row = decode(export_cases([sample_case()], "expiring", evaluator, PROSECUTORS))
    cells = dict(zip(header, row))
    assert cells["Investigation time remaining"] == "10 days"
    assert cells["Shortest detention remaining"] == "4 days"
    assert cells["Stage"] == CaseStage.INVESTIGATION


def test_case_without_detained_defendants(evaluator):
    case = sample_case()
    case.defendants = []
    header, row = decode(export_cases([case], "investigation", evaluator))
    cells = dict(zip(header, row))
    assert cells["Shortest detention"] == "None"
    assert cells["Prosecutor"] == "p1"


def test_unknown_view_is_rejected(evaluator):
    with pytest.raises(ExportError):
        export_cases([sample_case()], "archived", evaluator)


def test_report_export(evaluator):
    report = Report(
        id="r1",
        name="Break-in report",
        charges="Theft",
        report_date="20/04/2024",
        resolution_deadline="20/06/2024",
        prosecutor="p1",
        stage=ReportStage.PENDING,
    )
    header, row = decode(export_reports([report], "all", evaluator, PROSECUTORS))
    assert header == ["Report name", "Charges", "Report date", "Resolution deadline", "Prosecutor", "Notes", "Status"]
    assert row == ["Break-in report", "Theft", "20/04/2024", "20/06/2024", "Vo Thi Lan", "", "Pending"]


def test_export_filename():
    assert export_filename("cases", date(2024, 5, 31)) == "cases-2024-05-31.txt"
