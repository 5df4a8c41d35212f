"""
In-memory case collection for one user, mirrored to the persistence port.

Every mutation is applied to the in-memory list first and is immediately
visible to callers; a snapshot of the whole collection is then handed to the
persistence writer. The store does not validate input and does not police the
stage workflow: ``transfer_stage`` is a setter plus the transfer-date stamps.
"""

import copy
import uuid
from typing import Any, Dict, List, Optional

from casetrack.models.entities import Case, CaseStage, Defendant
from casetrack.services.deadline_service import DeadlineEvaluator
from casetrack.services.persistence import CASES_COLLECTION, PersistenceWriter
from casetrack.utils.dates import today
from casetrack.utils.logging_config import get_logger, log_business_event


def new_id() -> str:
    return uuid.uuid4().hex


class CaseStore:
    collection = CASES_COLLECTION

    def __init__(
        self,
        writer: PersistenceWriter,
        user_key: str,
        evaluator: Optional[DeadlineEvaluator] = None,
        records: Optional[List[Case]] = None,
    ):
        self.writer = writer
        self.user_key = user_key
        self.evaluator = evaluator or DeadlineEvaluator()
        self._cases: List[Case] = list(records or [])
        self.logger = get_logger("stores.cases")

    @classmethod
    def load(cls, writer: PersistenceWriter, user_key: str, evaluator: Optional[DeadlineEvaluator] = None):
        """Hydrate the store from persistence; unreadable rows are skipped"""
        store = cls(writer, user_key, evaluator)
        for row in writer.load(cls.collection, user_key):
            try:
                store._cases.append(Case.from_dict(row))
            except (TypeError, AttributeError) as e:
                store.logger.warning(
                    "Skipping malformed case record",
                    extra={"event": "case_record_skipped", "error": str(e), "user_key": user_key},
                )
        return store

    def _persist(self) -> None:
        self.writer.persist(self.collection, self.user_key, [c.to_dict() for c in self._cases])

    def _index(self, case_id: str) -> Optional[int]:
        for i, case in enumerate(self._cases):
            if case.id == case_id:
                return i
        return None

    # Queries

    def __len__(self) -> int:
        return len(self._cases)

    def all(self) -> List[Case]:
        return [copy.deepcopy(c) for c in self._cases]

    def get(self, case_id: str) -> Optional[Case]:
        index = self._index(case_id)
        return copy.deepcopy(self._cases[index]) if index is not None else None

    def by_stage(self, stage: str) -> List[Case]:
        return [copy.deepcopy(c) for c in self._cases if c.stage == stage]

    def expiring_soon(self) -> List[Case]:
        return [copy.deepcopy(c) for c in self._cases if self.evaluator.case_is_expiring(c)]

    # Mutations

    def add(self, case_data: Dict[str, Any]) -> Case:
        """Create a case in the investigation stage with fresh ids"""
        defendants = []
        for entry in case_data.get("defendants") or []:
            data = entry.to_dict() if isinstance(entry, Defendant) else dict(entry)
            data["id"] = new_id()
            defendants.append(Defendant.from_dict(data))

        case = Case(
            id=new_id(),
            name=case_data.get("name", ""),
            charges=case_data.get("charges", ""),
            investigation_deadline=case_data.get("investigation_deadline") or today(),
            prosecutor=case_data.get("prosecutor"),
            stage=CaseStage.INVESTIGATION,
            defendants=defendants,
            created_at=today(),
            notes=case_data.get("notes") or "",
        )
        self._cases.append(case)
        self._persist()
        log_business_event("case_created", "case", case.id, defendants=len(defendants))
        return copy.deepcopy(case)

    def update(self, case: Case) -> bool:
        """
        Replace the stored case with the same id.

        Returns False, leaving the collection untouched, when no case has that id.
        """
        index = self._index(case.id)
        if index is None:
            self.logger.info("Update of unknown case ignored", extra={"event": "case_not_found", "case_id": case.id})
            return False
        self._cases[index] = copy.deepcopy(case)
        self._persist()
        log_business_event("case_updated", "case", case.id)
        return True

    def delete(self, case_id: str) -> bool:
        """Remove a case permanently. Returns False when the id is unknown."""
        index = self._index(case_id)
        if index is None:
            return False
        del self._cases[index]
        self._persist()
        log_business_event("case_deleted", "case", case_id)
        return True

    def transfer_stage(self, case_id: str, new_stage: str) -> Optional[Case]:
        """
        Move a case to ``new_stage``.

        Entering Prosecution or Trial stamps the matching transfer date the
        first time only. Returns the updated case, or None for an unknown id.
        """
        index = self._index(case_id)
        if index is None:
            return None
        case = self._cases[index]

        previous = case.stage
        case.stage = new_stage
        if new_stage == CaseStage.PROSECUTION and not case.prosecution_transfer_date:
            case.prosecution_transfer_date = today()
        elif new_stage == CaseStage.TRIAL and not case.trial_transfer_date:
            case.trial_transfer_date = today()

        self._persist()
        log_business_event("case_stage_changed", "case", case_id, from_stage=previous, to_stage=new_stage)
        return copy.deepcopy(case)
