"""
Emergency Incident Reports.

A report carries the incident type, a priority, an optional description,
optional photo / voice-note attachments and the reporter's location.
Submitting a report asks a ``HospitalDirectory`` for nearby emergency
care; when no hospital is available, nearby areas to search are offered
instead.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class IncidentType(str, Enum):
    ACCIDENT = "accident"
    HEART_ATTACK = "heart-attack"
    STROKE = "stroke"
    BREATHING = "breathing"
    INJURY = "injury"
    POISONING = "poisoning"
    OTHER = "other"


INCIDENT_LABELS: dict[IncidentType, str] = {
    IncidentType.ACCIDENT: "🚗 Accident",
    IncidentType.HEART_ATTACK: "❤️ Heart Attack",
    IncidentType.STROKE: "🧠 Stroke",
    IncidentType.BREATHING: "🫁 Breathing Issue",
    IncidentType.INJURY: "🩹 Severe Injury",
    IncidentType.POISONING: "☠️ Poisoning",
    IncidentType.OTHER: "⚠️ Other Emergency",
}


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ReportValidationError(ValueError):
    """The report cannot be submitted as entered."""


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: str | None = None

    def describe(self) -> str:
        return self.address or f"{self.latitude:.4f}, {self.longitude:.4f}"


@dataclass(frozen=True)
class IncidentReport:
    incident_type: IncidentType
    priority: Priority = Priority.HIGH
    description: str = ""
    photo_path: str | None = None
    audio_path: str | None = None
    location: Location | None = None
    reporter: str | None = None
    reported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_form(
        cls,
        incident_type: str | None,
        priority: str | None = None,
        description: str = "",
        photo_path: str | None = None,
        audio_path: str | None = None,
        location: Location | None = None,
        reporter: str | None = None,
    ) -> "IncidentReport":
        """
        Build a report from raw form values.

        Raises:
            ReportValidationError: if the incident type is missing or unknown.
        """
        if not incident_type:
            raise ReportValidationError("Please select an incident type")
        try:
            kind = IncidentType(incident_type)
        except ValueError:
            raise ReportValidationError(f"Unknown incident type '{incident_type}'") from None
        try:
            level = Priority(priority) if priority else Priority.HIGH
        except ValueError:
            raise ReportValidationError(f"Unknown priority '{priority}'") from None

        return cls(
            incident_type=kind,
            priority=level,
            description=(description or "").strip(),
            photo_path=photo_path,
            audio_path=audio_path,
            location=location,
            reporter=reporter,
        )


@dataclass(frozen=True)
class Hospital:
    id: int
    name: str
    distance_km: float
    availability: str
    specialization: str


@dataclass(frozen=True)
class Area:
    id: int
    name: str
    distance_km: float


@dataclass(frozen=True)
class HospitalMatch:
    hospitals: list[Hospital] = field(default_factory=list)
    suggested_areas: list[Area] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.hospitals)


@dataclass(frozen=True)
class IncidentReceipt:
    report: IncidentReport
    match: HospitalMatch
    assigned_hospital: Hospital | None
    assigned_area: Area | None
    report_id: str | None
    message: str


# ── Hospital Lookup ────────────────────────────────────────────────────────

class HospitalDirectory(ABC):
    """Finds emergency care for a report."""

    @abstractmethod
    def match(self, report: IncidentReport) -> HospitalMatch:
        ...


DEFAULT_HOSPITALS: list[Hospital] = [
    Hospital(1, "Apollo Emergency Center", 2.3, "Available", "Multi-specialty"),
    Hospital(2, "Max Hospital Emergency", 3.1, "Available", "Trauma Care"),
]

DEFAULT_AREAS: list[Area] = [
    Area(1, "Delhi NCR", 15),
    Area(2, "Gurgaon", 25),
    Area(3, "Noida", 20),
]


class StaticHospitalDirectory(HospitalDirectory):
    """Fixed hospital and area lists, nearest first."""

    def __init__(
        self,
        hospitals: list[Hospital] | None = None,
        areas: list[Area] | None = None,
    ):
        self.hospitals = list(DEFAULT_HOSPITALS if hospitals is None else hospitals)
        self.areas = list(DEFAULT_AREAS if areas is None else areas)

    def match(self, report: IncidentReport) -> HospitalMatch:
        available = sorted(
            (h for h in self.hospitals if h.availability.lower() == "available"),
            key=lambda h: h.distance_km,
        )
        if available:
            return HospitalMatch(hospitals=available)
        return HospitalMatch(suggested_areas=sorted(self.areas, key=lambda a: a.distance_km))


class IncidentStore(Protocol):
    def save_incident(self, report: IncidentReport, match: HospitalMatch) -> str | None:
        ...


# ── Submission ─────────────────────────────────────────────────────────────

def _choose(options: list, selected_id: int | None, kind: str):
    if selected_id is None:
        return options[0] if options else None
    for option in options:
        if option.id == selected_id:
            return option
    raise ReportValidationError(f"The selected {kind} is not one of the matches for this report")


def submit_incident(
    report: IncidentReport,
    directory: HospitalDirectory,
    store: IncidentStore | None = None,
    match: HospitalMatch | None = None,
    selected_hospital_id: int | None = None,
    selected_area_id: int | None = None,
) -> IncidentReceipt:
    """
    Match a report to emergency care and (optionally) persist it.

    Pass the ``match`` already shown to the reporter along with the
    hospital (or, when none is available, the area) they picked. Without
    a pick the nearest one is used. A store that cannot save returns None
    and the report still goes through.

    Raises:
        ReportValidationError: if the pick is not part of the match.
    """
    if match is None:
        match = directory.match(report)
    hospital = _choose(match.hospitals, selected_hospital_id, "hospital")
    if hospital is None:
        area = _choose(match.suggested_areas, selected_area_id, "area")
    else:
        area = None

    report_id = store.save_incident(report, match) if store is not None else None

    if hospital:
        message = f"Emergency report submitted successfully! Assigned to: {hospital.name}"
    elif area:
        message = f"Emergency report submitted successfully! Searching in: {area.name}"
    else:
        message = "Emergency report submitted successfully! Searching for nearby hospitals..."

    logger.info(
        "[Incident] %s (%s) → %s",
        report.incident_type.value,
        report.priority.value,
        hospital.name if hospital else area.name if area else "no match",
    )

    return IncidentReceipt(
        report=report,
        match=match,
        assigned_hospital=hospital,
        assigned_area=area,
        report_id=report_id,
        message=message,
    )
