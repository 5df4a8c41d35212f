"""
Data models and entities for the Case & Report Tracker.

This module defines the data structures used throughout the application.
Dates are kept as display strings in ``DD/MM/YYYY`` form, exactly as they are
entered and shown; ``casetrack.utils.dates`` converts them when arithmetic is
needed.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class CaseStage:
    """Workflow stages of a criminal case"""

    INVESTIGATION = "Investigation"
    PROSECUTION = "Prosecution"
    TRIAL = "Trial"
    COMPLETED = "Completed"
    DISCONTINUED = "Discontinued"
    TEMPORARILY_SUSPENDED = "TemporarilySuspended"
    TRANSFERRED = "Transferred"


class ReportStage:
    """Workflow stages of an incident report"""

    PENDING = "Pending"
    PROSECUTED = "Prosecuted"
    NOT_PROSECUTED = "NotProsecuted"
    TEMPORARILY_SUSPENDED = "TemporarilySuspended"
    TRANSFERRED = "Transferred"


class PreventiveMeasure:
    AT_LARGE = "AtLarge"
    DETAINED = "Detained"


@dataclass
class Defendant:
    """Defendant entity model, owned by its case"""

    id: str
    name: str = ""
    charges: str = ""
    preventive_measure: str = PreventiveMeasure.AT_LARGE
    detention_deadline: Optional[str] = None

    def __post_init__(self):
        if self.preventive_measure != PreventiveMeasure.DETAINED:
            self.detention_deadline = None

    @property
    def is_detained(self) -> bool:
        return self.preventive_measure == PreventiveMeasure.DETAINED

    def set_preventive_measure(self, measure: str, detention_deadline: Optional[str] = None) -> None:
        """Switch the measure; only a detained defendant keeps a detention deadline"""
        self.preventive_measure = measure
        if measure == PreventiveMeasure.DETAINED:
            self.detention_deadline = detention_deadline or self.detention_deadline
        else:
            self.detention_deadline = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Defendant":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            charges=data.get("charges", ""),
            preventive_measure=data.get("preventive_measure", PreventiveMeasure.AT_LARGE),
            detention_deadline=data.get("detention_deadline"),
        )


@dataclass
class Case:
    """Case entity model"""

    id: str
    name: str
    charges: str
    investigation_deadline: str
    prosecutor: Optional[str] = None  # prosecutor id, joined to a name for display
    stage: str = CaseStage.INVESTIGATION
    prosecution_transfer_date: Optional[str] = None
    trial_transfer_date: Optional[str] = None
    defendants: List[Defendant] = field(default_factory=list)
    created_at: Optional[str] = None
    notes: str = ""

    @property
    def detained_defendants(self) -> List[Defendant]:
        return [d for d in self.defendants if d.is_detained and d.detention_deadline]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "name": self.name,
            "charges": self.charges,
            "investigation_deadline": self.investigation_deadline,
            "prosecutor": self.prosecutor,
            "stage": self.stage,
            "prosecution_transfer_date": self.prosecution_transfer_date,
            "trial_transfer_date": self.trial_transfer_date,
            "defendants": [d.to_dict() for d in self.defendants],
            "created_at": self.created_at,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Case":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            charges=data.get("charges", ""),
            investigation_deadline=data.get("investigation_deadline", ""),
            prosecutor=data.get("prosecutor"),
            stage=data.get("stage", CaseStage.INVESTIGATION),
            prosecution_transfer_date=data.get("prosecution_transfer_date"),
            trial_transfer_date=data.get("trial_transfer_date"),
            defendants=[Defendant.from_dict(d) for d in data.get("defendants") or []],
            created_at=data.get("created_at"),
            notes=data.get("notes") or "",
        )


@dataclass
class Report:
    """Incident report entity model"""

    id: str
    name: str
    charges: str
    report_date: str  # date the report was received
    resolution_deadline: Optional[str] = None
    prosecutor: Optional[str] = None
    stage: str = ReportStage.PENDING
    prosecution_date: Optional[str] = None
    resolution_date: Optional[str] = None
    created_at: Optional[str] = None
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            charges=data.get("charges", ""),
            report_date=data.get("report_date", ""),
            resolution_deadline=data.get("resolution_deadline"),
            prosecutor=data.get("prosecutor"),
            stage=data.get("stage", ReportStage.PENDING),
            prosecution_date=data.get("prosecution_date"),
            resolution_date=data.get("resolution_date"),
            created_at=data.get("created_at"),
            notes=data.get("notes") or "",
        )


@dataclass
class Prosecutor:
    """Prosecutor reference entry"""

    name: str
    title: str
    id: Optional[str] = None
    department: Optional[str] = None
    user_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Prosecutor":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            title=data.get("title", ""),
            department=data.get("department"),
            user_id=data.get("user_id"),
        )


@dataclass(frozen=True)
class PenalCodeItem:
    """One article (optionally clause) of the penal code catalog"""

    article: int
    title: str
    clause: Optional[int] = None
    description: str = ""


# Common constants
CASE_STAGES = [
    CaseStage.INVESTIGATION,
    CaseStage.PROSECUTION,
    CaseStage.TRIAL,
    CaseStage.COMPLETED,
    CaseStage.DISCONTINUED,
    CaseStage.TEMPORARILY_SUSPENDED,
    CaseStage.TRANSFERRED,
]
CASE_EXCEPTIONAL_EXITS = [CaseStage.TRANSFERRED, CaseStage.TEMPORARILY_SUSPENDED, CaseStage.DISCONTINUED]

REPORT_STAGES = [
    ReportStage.PENDING,
    ReportStage.PROSECUTED,
    ReportStage.NOT_PROSECUTED,
    ReportStage.TEMPORARILY_SUSPENDED,
    ReportStage.TRANSFERRED,
]
REPORT_RESOLUTION_STAGES = [
    ReportStage.NOT_PROSECUTED,
    ReportStage.TEMPORARILY_SUSPENDED,
    ReportStage.TRANSFERRED,
]

PREVENTIVE_MEASURES = [PreventiveMeasure.AT_LARGE, PreventiveMeasure.DETAINED]

# Transitions offered to the user. Stores accept any stage; these are policy
# for the presentation boundary.
CASE_STAGE_TRANSITIONS = {
    CaseStage.INVESTIGATION: [CaseStage.PROSECUTION] + CASE_EXCEPTIONAL_EXITS,
    CaseStage.PROSECUTION: [CaseStage.TRIAL] + CASE_EXCEPTIONAL_EXITS,
    CaseStage.TRIAL: [CaseStage.COMPLETED] + CASE_EXCEPTIONAL_EXITS,
    CaseStage.TEMPORARILY_SUSPENDED: [CaseStage.TRANSFERRED, CaseStage.DISCONTINUED],
    CaseStage.COMPLETED: [],
    CaseStage.DISCONTINUED: [],
    CaseStage.TRANSFERRED: [],
}
REPORT_STAGE_TRANSITIONS = {
    ReportStage.PENDING: [
        ReportStage.PROSECUTED,
        ReportStage.NOT_PROSECUTED,
        ReportStage.TEMPORARILY_SUSPENDED,
        ReportStage.TRANSFERRED,
    ],
    ReportStage.PROSECUTED: [],
    ReportStage.NOT_PROSECUTED: [],
    ReportStage.TEMPORARILY_SUSPENDED: [],
    ReportStage.TRANSFERRED: [],
}
