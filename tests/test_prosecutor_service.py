"""
Tests for prosecutor reference data, name resolution and the penal-code lookup.
"""

import pytest

from casetrack.models.entities import PenalCodeItem, Prosecutor
from casetrack.services.penal_code import PENAL_CODE, format_penal_code_display, search_penal_code
from casetrack.services.prosecutor_service import (
    NOT_FOUND,
    PostgresProsecutorProvider,
    ProsecutorProvider,
    StaticProsecutorProvider,
)
from casetrack.utils.helpers import format_days, resolve_prosecutor_name, single_line

OWNER = "user-1"
SEED = [
    {"id": "shared-1", "name": "Vo Thi Lan", "title": "Chief Prosecutor", "department": "Criminal Investigation"},
    {"id": "shared-2", "name": "an Nguyen", "title": "Prosecutor", "department": "Economic Crimes"},
]


class UnavailableProvider(ProsecutorProvider):
    backend = "unavailable"

    def _fetch(self, owner):
        raise ConnectionError("reference store offline")

    def _insert(self, owner, prosecutor):
        raise ConnectionError("reference store offline")


class FakeDatabase:
    def __init__(self, row=None):
        self.row = row
        self.calls = []

    def execute_query(self, query, params=None, fetch_one=False, fetch_all=True):
        self.calls.append((query, params))
        return self.row if fetch_one else []


@pytest.fixture
def provider():
    return StaticProsecutorProvider(SEED)


def test_list_is_sorted_case_insensitively(provider):
    result = provider.list(OWNER)
    assert result.success
    assert [p.name for p in result.data] == ["an Nguyen", "Vo Thi Lan"]


def test_search_matches_name_title_and_department(provider):
    assert [p.id for p in provider.search(OWNER, "chief").data] == ["shared-1"]
    assert [p.id for p in provider.search(OWNER, "ECONOMIC").data] == ["shared-2"]
    assert len(provider.search(OWNER, "   ").data) == 2
    assert provider.search(OWNER, "nobody").data == []


def test_added_entries_are_private_to_their_owner(provider):
    created = provider.add(OWNER, {"name": "Le Minh", "title": "Senior Prosecutor"})
    assert created.success
    assert created.data.id
    assert created.data.user_id == OWNER

    assert len(provider.list(OWNER).data) == 3
    assert len(provider.list("user-2").data) == 2


def test_update_only_touches_editable_fields(provider):
    created = provider.add(OWNER, {"name": "Le Minh", "title": "Prosecutor"}).data
    result = provider.update(OWNER, created.id, {"title": "Senior Prosecutor", "user_id": "someone-else"})
    assert result.success
    assert result.data.title == "Senior Prosecutor"
    assert result.data.user_id == OWNER


def test_shared_seed_entries_are_read_only(provider):
    assert provider.update(OWNER, "shared-1", {"name": "Renamed"}).error == NOT_FOUND
    assert provider.delete(OWNER, "shared-1").error == NOT_FOUND
    assert provider.get(OWNER, "shared-1").data.name == "Vo Thi Lan"


def test_delete_and_get(provider):
    created = provider.add(OWNER, {"name": "Le Minh", "title": "Prosecutor"}).data
    assert provider.get(OWNER, created.id).success
    assert provider.delete(OWNER, created.id).success
    assert provider.get(OWNER, created.id).error == NOT_FOUND
    assert not provider.delete("user-2", "shared-2").success


def test_unavailable_backend_returns_failure_instead_of_raising():
    provider = UnavailableProvider()
    listed = provider.list(OWNER)
    assert listed.success is False
    assert listed.data == []
    assert "offline" in listed.error

    added = provider.add(OWNER, {"name": "Le Minh", "title": "Prosecutor"})
    assert added.success is False
    assert added.data is None


def test_result_to_dict_serialises_prosecutors(provider):
    payload = provider.list(OWNER).to_dict()
    assert payload["success"] is True
    assert payload["data"][0]["name"] == "an Nguyen"


def test_postgres_delete_unknown_id():
    provider = PostgresProsecutorProvider(FakeDatabase(row=None))
    assert provider.delete(OWNER, "missing").error == NOT_FOUND


def test_postgres_update_is_scoped_to_owner():
    db = FakeDatabase(row={"id": "p1", "name": "Le Minh", "title": "Prosecutor", "department": None, "user_id": OWNER})
    result = PostgresProsecutorProvider(db).update(OWNER, "p1", {"name": "Le Minh"})
    assert result.success
    query, params = db.calls[0]
    assert "user_id = %(user_id)s" in query
    assert params == {"name": "Le Minh", "id": "p1", "user_id": OWNER}


def test_resolve_prosecutor_name():
    prosecutors = [Prosecutor(id="p1", name="Le Minh", title="Prosecutor"), {"id": "p2", "name": "Vo Lan"}]
    assert resolve_prosecutor_name(prosecutors, "p1") == "Le Minh"
    assert resolve_prosecutor_name(prosecutors, "p2") == "Vo Lan"
    assert resolve_prosecutor_name(prosecutors, "p9") == "p9"
    assert resolve_prosecutor_name(prosecutors, None) == ""


def test_display_helpers():
    assert format_days(12) == "12 days"
    assert format_days(None) == "None"
    assert single_line("first\tsecond\r\nthird\n") == "first second third "
    assert single_line(None) == ""


def test_penal_code_display():
    assert format_penal_code_display(PenalCodeItem(173, "Theft of property")) == "Article 173 - Theft of property"
    assert format_penal_code_display(PenalCodeItem(260, "Traffic", clause=2)) == "Article 260(2) - Traffic"


def test_penal_code_search():
    assert [item.article for item in search_penal_code("173")] == [173]
    assert search_penal_code("THEFT")[0].title == "Theft of property"
    assert search_penal_code("") == PENAL_CODE[:10]
    assert len(search_penal_code("property", limit=2)) == 2
    assert search_penal_code("no such offence") == []


def test_penal_code_search_matches_clause_display():
    matches = search_penal_code("260(2)")
    assert [(item.article, item.clause) for item in matches] == [(260, 2)]
