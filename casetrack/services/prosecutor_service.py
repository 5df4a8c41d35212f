"""
Prosecutor reference data.

Every operation is scoped to one owning user and returns a ``ServiceResult``
instead of raising: when the backing store is unreachable callers get
``success=False`` with an empty (or unchanged) result, and the error is
logged. An empty list may therefore mean "unavailable" rather than "none".
"""

import copy
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from casetrack.models.entities import Prosecutor
from casetrack.utils.logging_config import get_logger

EDITABLE_FIELDS = ("name", "title", "department")
NOT_FOUND = "Prosecutor not found"


@dataclass
class ServiceResult:
    success: bool
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.data
        if isinstance(data, Prosecutor):
            data = data.to_dict()
        elif isinstance(data, list):
            data = [item.to_dict() if isinstance(item, Prosecutor) else item for item in data]
        return {"success": self.success, "data": data, "error": self.error}


def _sorted_by_name(prosecutors: Iterable[Prosecutor]) -> List[Prosecutor]:
    return sorted(prosecutors, key=lambda p: (p.name or "").casefold())


class ProsecutorProvider:
    """
    Base provider. Subclasses implement the ``_fetch``/``_insert``/``_update``/
    ``_delete`` hooks and may raise freely; the public methods never do.
    """

    backend = "abstract"

    def __init__(self):
        self.logger = get_logger("reference.prosecutors")

    def _failure(self, operation: str, owner: str, error: Exception, data: Any = None) -> ServiceResult:
        self.logger.error(
            f"Error {operation} prosecutors",
            extra={
                "event": "prosecutor_operation_failed",
                "operation": operation,
                "backend": self.backend,
                "owner": owner,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        return ServiceResult(success=False, data=data, error=str(error))

    def list(self, owner: str) -> ServiceResult:
        try:
            return ServiceResult(success=True, data=_sorted_by_name(self._fetch(owner)))
        except Exception as e:
            return self._failure("fetching", owner, e, data=[])

    def search(self, owner: str, query: str) -> ServiceResult:
        """Match name, title or department; a blank query lists everything"""
        if not query or not query.strip():
            return self.list(owner)
        needle = query.strip().casefold()
        try:
            matches = [
                p
                for p in self._fetch(owner)
                if any(needle in (value or "").casefold() for value in (p.name, p.title, p.department))
            ]
            return ServiceResult(success=True, data=_sorted_by_name(matches))
        except Exception as e:
            return self._failure("searching", owner, e, data=[])

    def get(self, owner: str, prosecutor_id: str) -> ServiceResult:
        try:
            for prosecutor in self._fetch(owner):
                if prosecutor.id == prosecutor_id:
                    return ServiceResult(success=True, data=prosecutor)
            return ServiceResult(success=False, error=NOT_FOUND)
        except Exception as e:
            return self._failure("fetching", owner, e)

    def add(self, owner: str, entry: Dict[str, Any]) -> ServiceResult:
        prosecutor = Prosecutor(
            name=entry.get("name", ""),
            title=entry.get("title", ""),
            department=entry.get("department"),
            user_id=owner,
        )
        try:
            created = self._insert(owner, prosecutor)
        except Exception as e:
            return self._failure("adding", owner, e)
        self.logger.info("New prosecutor added", extra={"event": "prosecutor_added", "prosecutor_id": created.id})
        return ServiceResult(success=True, data=created)

    def update(self, owner: str, prosecutor_id: str, fields: Dict[str, Any]) -> ServiceResult:
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        try:
            updated = self._update(owner, prosecutor_id, changes)
        except Exception as e:
            return self._failure("updating", owner, e)
        if updated is None:
            return ServiceResult(success=False, error=NOT_FOUND)
        self.logger.info("Prosecutor updated", extra={"event": "prosecutor_updated", "prosecutor_id": prosecutor_id})
        return ServiceResult(success=True, data=updated)

    def delete(self, owner: str, prosecutor_id: str) -> ServiceResult:
        try:
            removed = self._delete(owner, prosecutor_id)
        except Exception as e:
            return self._failure("deleting", owner, e)
        if not removed:
            return ServiceResult(success=False, error=NOT_FOUND)
        self.logger.info("Prosecutor deleted", extra={"event": "prosecutor_deleted", "prosecutor_id": prosecutor_id})
        return ServiceResult(success=True)

    # Backend hooks

    def _fetch(self, owner: str) -> List[Prosecutor]:
        raise NotImplementedError

    def _insert(self, owner: str, prosecutor: Prosecutor) -> Prosecutor:
        raise NotImplementedError

    def _update(self, owner: str, prosecutor_id: str, changes: Dict[str, Any]) -> Optional[Prosecutor]:
        raise NotImplementedError

    def _delete(self, owner: str, prosecutor_id: str) -> bool:
        raise NotImplementedError


class StaticProsecutorProvider(ProsecutorProvider):
    """
    In-memory table. Seed entries without a ``user_id`` are shared by every
    owner and are read-only; entries added at runtime belong to their owner.
    """

    backend = "static"

    def __init__(self, seed: Optional[Iterable[Dict[str, Any]]] = None):
        super().__init__()
        self._rows: List[Prosecutor] = []
        for entry in seed or []:
            prosecutor = Prosecutor.from_dict(entry)
            prosecutor.id = prosecutor.id or uuid.uuid4().hex
            self._rows.append(prosecutor)

    def _visible(self, owner: str, prosecutor: Prosecutor) -> bool:
        return prosecutor.user_id is None or prosecutor.user_id == owner

    def _fetch(self, owner: str) -> List[Prosecutor]:
        return [copy.copy(p) for p in self._rows if self._visible(owner, p)]

    def _insert(self, owner: str, prosecutor: Prosecutor) -> Prosecutor:
        prosecutor.id = uuid.uuid4().hex
        self._rows.append(prosecutor)
        return copy.copy(prosecutor)

    def _owned(self, owner: str, prosecutor_id: str) -> Optional[Prosecutor]:
        for prosecutor in self._rows:
            if prosecutor.id == prosecutor_id and prosecutor.user_id == owner:
                return prosecutor
        return None

    def _update(self, owner: str, prosecutor_id: str, changes: Dict[str, Any]) -> Optional[Prosecutor]:
        prosecutor = self._owned(owner, prosecutor_id)
        if prosecutor is None:
            return None
        for key, value in changes.items():
            setattr(prosecutor, key, value)
        return copy.copy(prosecutor)

    def _delete(self, owner: str, prosecutor_id: str) -> bool:
        prosecutor = self._owned(owner, prosecutor_id)
        if prosecutor is None:
            return False
        self._rows.remove(prosecutor)
        return True


class PostgresProsecutorProvider(ProsecutorProvider):
    """Prosecutors stored in the ``prosecutors`` table, one owner per row"""

    backend = "postgres"

    def __init__(self, db_connection):
        super().__init__()
        self.db = db_connection

    def _fetch(self, owner: str) -> List[Prosecutor]:
        query = "SELECT id, name, title, department, user_id FROM prosecutors WHERE user_id = %s ORDER BY name"
        rows = self.db.execute_query(query, (owner,)) or []
        return [Prosecutor.from_dict(dict(row)) for row in rows]

    def _insert(self, owner: str, prosecutor: Prosecutor) -> Prosecutor:
        query = """
        INSERT INTO prosecutors (id, name, title, department, user_id)
        VALUES (%(id)s, %(name)s, %(title)s, %(department)s, %(user_id)s)
        RETURNING id, name, title, department, user_id
        """
        params = prosecutor.to_dict()
        params["id"] = uuid.uuid4().hex
        row = self.db.execute_query(query, params, fetch_one=True)
        return Prosecutor.from_dict(dict(row))

    def _update(self, owner: str, prosecutor_id: str, changes: Dict[str, Any]) -> Optional[Prosecutor]:
        if not changes:
            rows = [p for p in self._fetch(owner) if p.id == prosecutor_id]
            return rows[0] if rows else None
        set_clause = ", ".join(f"{key} = %({key})s" for key in changes)
        query = (
            f"UPDATE prosecutors SET {set_clause} WHERE id = %(id)s AND user_id = %(user_id)s "
            "RETURNING id, name, title, department, user_id"
        )
        params = dict(changes, id=prosecutor_id, user_id=owner)
        row = self.db.execute_query(query, params, fetch_one=True)
        return Prosecutor.from_dict(dict(row)) if row else None

    def _delete(self, owner: str, prosecutor_id: str) -> bool:
        query = "DELETE FROM prosecutors WHERE id = %s AND user_id = %s RETURNING id"
        row = self.db.execute_query(query, (prosecutor_id, owner), fetch_one=True)
        return row is not None
