"""
Tests for the per-user case store.
"""

import json

import pytest

from casetrack.models.entities import CaseStage, PreventiveMeasure
from casetrack.services.case_store import CaseStore
from casetrack.services.persistence import CASES_COLLECTION


@pytest.fixture
def store(writer, evaluator):
    return CaseStore.load(writer, "clerk@example.org", evaluator)


def case_form(**overrides):
    data = {
        "name": "Nguyen Van A - Article 173",
        "charges": "Article 173 - Theft of property",
        "investigation_deadline": "30/06/2024",
        "prosecutor": "p-1",
        "defendants": [
            {"name": "Nguyen Van A", "charges": "Article 173", "preventive_measure": PreventiveMeasure.AT_LARGE},
            {
                "name": "Tran Thi B",
                "charges": "Article 173",
                "preventive_measure": PreventiveMeasure.DETAINED,
                "detention_deadline": "20/05/2024",
            },
        ],
    }
    data.update(overrides)
    return data


def test_add_assigns_ids_and_starts_in_investigation(store):
    case = store.add(case_form())
    assert case.id
    assert case.stage == CaseStage.INVESTIGATION
    assert case.created_at
    assert len({d.id for d in case.defendants}) == 2
    assert all(d.id for d in case.defendants)
    assert len(store) == 1


def test_add_replaces_supplied_defendant_ids(store):
    form = case_form()
    form["defendants"][0]["id"] = "client-side"
    case = store.add(form)
    assert "client-side" not in [d.id for d in case.defendants]


def test_returned_cases_are_copies(store):
    case = store.add(case_form())
    case.name = "Changed outside the store"
    assert store.get(case.id).name == "Nguyen Van A - Article 173"

    listed = store.all()
    listed[0].defendants.clear()
    assert len(store.get(case.id).defendants) == 2


def test_update_replaces_case(store):
    case = store.add(case_form())
    case.notes = "Evidence received"
    assert store.update(case) is True
    assert store.get(case.id).notes == "Evidence received"


def test_update_and_delete_unknown_id(store):
    case = store.add(case_form())
    case.id = "missing"
    assert store.update(case) is False
    assert store.delete("missing") is False
    assert len(store) == 1


def test_delete_removes_case(store):
    case = store.add(case_form())
    assert store.delete(case.id) is True
    assert store.get(case.id) is None


def test_transfer_dates_are_stamped_once(store, monkeypatch):
    monkeypatch.setattr("casetrack.services.case_store.today", lambda: "02/05/2024")
    case = store.add(case_form())

    moved = store.transfer_stage(case.id, CaseStage.PROSECUTION)
    assert moved.stage == CaseStage.PROSECUTION
    assert moved.prosecution_transfer_date == "02/05/2024"
    assert moved.trial_transfer_date is None

    monkeypatch.setattr("casetrack.services.case_store.today", lambda: "10/06/2024")
    store.transfer_stage(case.id, CaseStage.INVESTIGATION)
    again = store.transfer_stage(case.id, CaseStage.PROSECUTION)
    assert again.prosecution_transfer_date == "02/05/2024"

    on_trial = store.transfer_stage(case.id, CaseStage.TRIAL)
    assert on_trial.trial_transfer_date == "10/06/2024"


def test_transfer_unknown_case(store):
    assert store.transfer_stage("missing", CaseStage.TRIAL) is None


def test_by_stage_keeps_insertion_order(store):
    first = store.add(case_form(name="First"))
    second = store.add(case_form(name="Second"))
    store.add(case_form(name="Third"))
    store.transfer_stage(first.id, CaseStage.PROSECUTION)
    store.transfer_stage(second.id, CaseStage.PROSECUTION)

    assert [c.name for c in store.by_stage(CaseStage.PROSECUTION)] == ["First", "Second"]
    assert [c.name for c in store.by_stage(CaseStage.INVESTIGATION)] == ["Third"]


def test_expiring_soon(store):
    store.add(case_form(name="Far", investigation_deadline="30/07/2024", defendants=[]))
    store.add(case_form(name="Near", investigation_deadline="10/05/2024", defendants=[]))
    assert [c.name for c in store.expiring_soon()] == ["Near"]


def test_mutations_are_persisted(store, writer, evaluator):
    case = store.add(case_form())
    store.transfer_stage(case.id, CaseStage.PROSECUTION)

    reloaded = CaseStore.load(writer, "clerk@example.org", evaluator)
    assert reloaded.get(case.id).stage == CaseStage.PROSECUTION


def test_load_skips_malformed_rows(local_store, writer, evaluator):
    local_store.save(
        CASES_COLLECTION,
        "clerk@example.org",
        [
            {"id": "good", "name": "Kept", "charges": "", "investigation_deadline": "30/06/2024"},
            {"id": "bad", "defendants": 5},
            "junk",
        ],
    )
    store = CaseStore.load(writer, "clerk@example.org", evaluator)
    assert [c.id for c in store.all()] == ["good"]


def test_collections_are_scoped_per_user(store, writer, evaluator, local_store):
    store.add(case_form())
    other = CaseStore.load(writer, "other@example.org", evaluator)
    assert len(other) == 0

    path = local_store._path(CASES_COLLECTION, "clerk@example.org")
    with open(path, encoding="utf-8") as fh:
        assert len(json.load(fh)) == 1
