"""
Per-user workspaces holding the case and report stores.

The registry is created by the application factory and reached through
``app.extensions``; nothing here is a module-level singleton.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Optional

from casetrack.services.case_store import CaseStore
from casetrack.services.deadline_service import DeadlineEvaluator
from casetrack.services.persistence import PersistenceWriter
from casetrack.services.report_store import ReportStore
from casetrack.utils.logging_config import get_logger


@dataclass
class Workspace:
    user_key: str
    cases: CaseStore
    reports: ReportStore


class WorkspaceRegistry:
    def __init__(self, writer: PersistenceWriter, evaluator: Optional[DeadlineEvaluator] = None):
        self.writer = writer
        self.evaluator = evaluator or DeadlineEvaluator()
        self._workspaces: Dict[str, Workspace] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("workspace")

    def for_user(self, user_key: str) -> Workspace:
        """Workspace for ``user_key``, loaded from persistence on first use"""
        with self._lock:
            workspace = self._workspaces.get(user_key)
            if workspace is None:
                workspace = Workspace(
                    user_key=user_key,
                    cases=CaseStore.load(self.writer, user_key, self.evaluator),
                    reports=ReportStore.load(self.writer, user_key, self.evaluator),
                )
                self._workspaces[user_key] = workspace
                self.logger.info(
                    "Workspace loaded",
                    extra={
                        "event": "workspace_loaded",
                        "user_key": user_key,
                        "cases": len(workspace.cases),
                        "reports": len(workspace.reports),
                    },
                )
            return workspace

    def evict(self, user_key: str) -> None:
        """Drop the cached workspace so the next access reloads it"""
        with self._lock:
            self._workspaces.pop(user_key, None)
